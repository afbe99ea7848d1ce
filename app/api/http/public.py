from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.domains.tours.engagement import EngagementTracker
from app.domains.tours.schemas import PublicTourResponse, ClickResponse

router = APIRouter(prefix="/public/tours", tags=["public"])


@router.get("/{slug}", response_model=PublicTourResponse)
async def get_public_tour(
    slug: str,
    db: AsyncSession = Depends(get_db)
):
    """Load a published tour and count the view.

    Private, unknown and deleted tours all answer 404 "Tour not found".
    """
    tour = await EngagementTracker(db).record_view(slug)
    return PublicTourResponse.from_entity(tour)


@router.post("/{slug}/click", response_model=ClickResponse)
async def record_click(
    slug: str,
    db: AsyncSession = Depends(get_db)
):
    """Count an interaction; unknown slugs succeed without counting anything"""
    await EngagementTracker(db).record_click(slug)
    return ClickResponse()
