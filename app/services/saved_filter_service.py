"""Service métier pour les filtres enregistrés (favoris du tiroir de filtres)."""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import FilterValidationError, SavedFilterNotFoundError
from app.filters import FilterGroup, GroupOperator, combine_groups, prepare_group
from app.models import SavedFilter
from app.models.enums import SavedFilterPageType
from app.schemas.saved_filter import SavedFilterCreate, SavedFilterResponse

logger = logging.getLogger(__name__)


def to_response(saved: SavedFilter) -> SavedFilterResponse:
    return SavedFilterResponse(
        id=saved.id,
        name=saved.name,
        page_type=saved.page_type,
        filter_data=FilterGroup.model_validate_json(saved.filter_data),
        created_at=saved.created_at,
    )


async def list_saved_filters(
    db: AsyncSession, organisation_id: str, page_type: SavedFilterPageType
) -> list[SavedFilterResponse]:
    result = await db.execute(
        select(SavedFilter)
        .where(
            SavedFilter.organisation_id == organisation_id,
            SavedFilter.page_type == page_type.value,
        )
        .order_by(SavedFilter.created_at.desc(), SavedFilter.id.desc())
    )
    return [to_response(saved) for saved in result.scalars().all()]


async def create_saved_filter(
    db: AsyncSession, organisation_id: str, data: SavedFilterCreate
) -> SavedFilterResponse:
    """
    Enregistre un filtre nettoyé (règles sans valeur retirées) puis validé
    contre les champs de sa page.

    Raises:
        FilterValidationError: Une règle ne correspond pas à la page, ou le
            filtre ne contient aucune règle complète
    """
    group = prepare_group(data.filter_data, data.page_type.value)
    if group is None:
        raise FilterValidationError(detail="Le filtre ne contient aucune règle complète")
    saved = SavedFilter(
        organisation_id=organisation_id,
        name=data.name,
        page_type=data.page_type.value,
        filter_data=group.model_dump_json(),
    )
    db.add(saved)
    await db.commit()
    await db.refresh(saved)
    logger.info(f"Filtre '{saved.name}' enregistré pour la page {saved.page_type}")
    return to_response(saved)


async def _get(db: AsyncSession, organisation_id: str, filter_id: int) -> SavedFilter:
    result = await db.execute(
        select(SavedFilter).where(
            SavedFilter.id == filter_id, SavedFilter.organisation_id == organisation_id
        )
    )
    saved = result.scalar_one_or_none()
    if saved is None:
        raise SavedFilterNotFoundError(
            detail=f"Filtre enregistré {filter_id} introuvable", filter_id=filter_id
        )
    return saved


async def delete_saved_filter(db: AsyncSession, organisation_id: str, filter_id: int) -> None:
    saved = await _get(db, organisation_id, filter_id)
    await db.delete(saved)
    await db.commit()


async def apply_saved_filter(
    db: AsyncSession,
    organisation_id: str,
    filter_id: int,
    current: FilterGroup | None,
    mode: GroupOperator | None,
) -> FilterGroup:
    """Charge un favori par-dessus le filtre courant (remplacement ou combinaison AND/OR)."""
    saved = await _get(db, organisation_id, filter_id)
    return combine_groups(current, FilterGroup.model_validate_json(saved.filter_data), mode)
