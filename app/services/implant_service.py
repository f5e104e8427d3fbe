"""Service métier pour le catalogue d'implants et de prothèses.

Les lignes de liste portent les statistiques de pose calculées sur les
implants posés: nombre de poses, dernière date de pose et taux de réussite
déduit du score de perte osseuse (0 -> 100 %, 5 -> 0 %).
"""

import json
import logging

from opentelemetry import trace
from sqlalchemy import case, distinct, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.cache import cache_delete, cache_get, cache_key_implant_brands, cache_set
from app.core.exceptions import ImplantNotFoundError
from app.filters import FilterGroup, FilterPage, evaluate, prepare_group
from app.models import Implant, SurgeryImplant
from app.models.enums import TypeImplant
from app.schemas.implant import ImplantCreate, ImplantListItem, ImplantUpdate

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


def filter_page_for(type_implant: TypeImplant | str | None) -> FilterPage:
    if type_implant is not None and TypeImplant(type_implant) == TypeImplant.PROTHESE:
        return FilterPage.PROTHESES
    return FilterPage.IMPLANTS


def filter_record(item: ImplantListItem) -> dict:
    """Valeurs filtrables d'une ligne de catalogue, par nom de champ."""
    return {
        "marque": item.marque,
        "referenceFabricant": item.reference_fabricant,
        "diametre": item.diametre,
        "longueur": item.longueur,
        "lot": item.lot,
        "typeProthese": item.type_prothese.value if item.type_prothese else None,
        "poseCount": item.pose_count,
        "successRate": item.success_rate,
    }


async def get_implant(db: AsyncSession, organisation_id: str, implant_id: int) -> Implant:
    result = await db.execute(
        select(Implant).where(Implant.id == implant_id, Implant.organisation_id == organisation_id)
    )
    implant = result.scalar_one_or_none()
    if implant is None:
        raise ImplantNotFoundError(detail=f"Implant {implant_id} introuvable", implant_id=implant_id)
    return implant


async def create_implant(db: AsyncSession, organisation_id: str, data: ImplantCreate) -> Implant:
    with tracer.start_as_current_span("create_implant") as span:
        implant = Implant(organisation_id=organisation_id, **data.model_dump(mode="json"))
        db.add(implant)
        await db.commit()
        await db.refresh(implant)

        span.set_attribute("implant.id", implant.id)
        logger.info(f"Implant {implant.marque} ajouté au catalogue ({implant.type_implant})")
        await cache_delete(cache_key_implant_brands(organisation_id))
        return implant


async def update_implant(
    db: AsyncSession, organisation_id: str, implant_id: int, data: ImplantUpdate
) -> Implant:
    implant = await get_implant(db, organisation_id, implant_id)
    for key, value in data.model_dump(mode="json", exclude_unset=True).items():
        setattr(implant, key, value)
    await db.commit()
    await db.refresh(implant)
    await cache_delete(cache_key_implant_brands(organisation_id))
    return implant


async def list_implants(
    db: AsyncSession,
    organisation_id: str,
    type_implant: TypeImplant | None = None,
) -> list[ImplantListItem]:
    """Catalogue avec statistiques de pose, favoris puis ordre alphabétique."""
    with tracer.start_as_current_span("list_implants") as span:
        rate = case(
            (SurgeryImplant.bone_loss_score.is_(None), None),
            else_=(5 - SurgeryImplant.bone_loss_score) * 20,
        )
        query = (
            select(
                Implant,
                func.count(SurgeryImplant.id).label("pose_count"),
                func.max(SurgeryImplant.date_pose).label("last_pose_date"),
                func.avg(rate).label("success_rate"),
            )
            .outerjoin(
                SurgeryImplant,
                (SurgeryImplant.implant_id == Implant.id)
                & (SurgeryImplant.organisation_id == organisation_id),
            )
            .where(Implant.organisation_id == organisation_id)
            .group_by(Implant.id)
            .order_by(Implant.is_favorite.desc(), Implant.marque, Implant.reference_fabricant)
        )
        if type_implant is not None:
            query = query.where(Implant.type_implant == type_implant.value)

        result = await db.execute(query)
        items = []
        for implant, pose_count, last_pose_date, success_rate in result.all():
            item = ImplantListItem.model_validate(implant)
            item.pose_count = pose_count
            item.last_pose_date = last_pose_date
            item.success_rate = round(float(success_rate), 1) if success_rate is not None else None
            items.append(item)

        span.set_attribute("implants.count", len(items))
        return items


async def search_implants(
    db: AsyncSession,
    organisation_id: str,
    filters: FilterGroup | None,
    type_implant: TypeImplant | None = None,
) -> list[ImplantListItem]:
    page = filter_page_for(type_implant)
    group = prepare_group(filters, page)
    items = await list_implants(db, organisation_id, type_implant)
    if group is None:
        return items
    return [item for item in items if evaluate(group, filter_record(item), page)]


async def list_brands(db: AsyncSession, organisation_id: str) -> list[str]:
    """Marques distinctes du catalogue (mises en cache)."""
    cache_key = cache_key_implant_brands(organisation_id)
    cached = await cache_get(cache_key)
    if cached:
        return json.loads(cached)

    result = await db.execute(
        select(distinct(Implant.marque))
        .where(Implant.organisation_id == organisation_id)
        .order_by(Implant.marque)
    )
    brands = list(result.scalars().all())
    await cache_set(cache_key, json.dumps(brands))
    return brands
