#!/usr/bin/env python3
"""Lance la détection des alertes hors du scheduler de l'application.

Usage:
    # Tous les cabinets
    python scripts/run_flag_detection.py

    # Un seul cabinet
    python scripts/run_flag_detection.py --organisation org-42

    # Affiche ce qui serait créé / résolu sans rien écrire
    python scripts/run_flag_detection.py --dry-run

Prérequis:
    - Variables d'environnement configurées (SQLALCHEMY_DATABASE_URI, KEYCLOAK_*)
"""

import argparse
import asyncio
import logging
import sys
from datetime import UTC, datetime
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import select

from app.core.database import async_session_maker
from app.models import Flag
from app.services.flag_engine import (
    detect_flags,
    list_organisations,
    load_snapshot,
    plan_reconciliation,
    run_flag_detection,
)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler()],
)
logger = logging.getLogger(__name__)


async def preview(organisation_id: str, now: datetime) -> None:
    async with async_session_maker() as db:
        snapshot = await load_snapshot(db, organisation_id)
        candidates = detect_flags(snapshot, now)
        result = await db.execute(
            select(Flag).where(Flag.organisation_id == organisation_id, Flag.resolved_at.is_(None))
        )
        plan = plan_reconciliation(list(result.scalars().all()), candidates)

    logger.info(
        f"[DRY-RUN] {organisation_id}: {len(plan.to_create)} à créer, "
        f"{plan.existing} existante(s), {len(plan.to_resolve)} à résoudre"
    )
    for candidate in plan.to_create:
        logger.info(f"  + {candidate.key} ({candidate.level.value}) {candidate.label}")
    for flag in plan.to_resolve:
        logger.info(f"  - {flag.key} (alerte {flag.id})")


async def main(organisation: str | None, dry_run: bool) -> int:
    now = datetime.now(UTC)

    if organisation:
        organisations = [organisation]
    else:
        async with async_session_maker() as db:
            organisations = await list_organisations(db)
    logger.info(f"{len(organisations)} cabinet(s) à traiter")

    failures = 0
    for organisation_id in organisations:
        try:
            if dry_run:
                await preview(organisation_id, now)
            else:
                async with async_session_maker() as db:
                    await run_flag_detection(db, organisation_id, now)
        except Exception as e:
            failures += 1
            logger.error(f"Échec pour {organisation_id}: {e}", exc_info=True)

    return 1 if failures else 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Détection des alertes cliniques Cassius")
    parser.add_argument("--organisation", help="Identifiant du cabinet (tous par défaut)")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Calcule les alertes sans écrire en base",
    )
    args = parser.parse_args()

    sys.exit(asyncio.run(main(args.organisation, args.dry_run)))
