from typing import Optional, List, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
import logging
import uuid

from app.core.errors import NotFoundError
from app.db.repositories.tour_repository import TourRepository
from app.domains.tours.editor import (
    AnnotationEditor, RenderedBounds, TourEditor,
    delete_annotation, set_screenshot, update_annotation, update_step_field
)
from app.domains.tours.entities import Annotation, Step, Tour
from app.domains.tours.schemas import (
    TourCreate, TourUpdate, StepUpdate, AnnotationPlacement, AnnotationUpdate
)
from app.domains.tours.share import ensure_share_slug

logger = logging.getLogger(__name__)


class TourService:
    """Owner-scoped tour authoring.

    A tour owned by someone else is reported exactly like a missing one.
    Every mutation is a load, an in-memory edit and a full save.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.tour_repository = TourRepository(session)

    async def create_tour(self, tour_data: TourCreate, owner_id: uuid.UUID) -> Tour:
        tour = Tour.create_tour(
            title=tour_data.title,
            description=tour_data.description,
            creator_id=owner_id,
            steps=[step.to_entity() for step in tour_data.steps]
        )
        created = await self.tour_repository.create(tour)
        logger.info(f"Created tour {created.uuid} for user {owner_id}")
        return created

    async def list_tours(
        self,
        owner_id: uuid.UUID,
        limit: int = 100,
        offset: int = 0
    ) -> Tuple[List[Tour], int]:
        tours = await self.tour_repository.get_by_owner(owner_id, limit, offset)
        total = await self.tour_repository.count_by_owner(owner_id)
        return tours, total

    async def get_tour(self, tour_uuid: uuid.UUID, owner_id: uuid.UUID) -> Tour:
        tour = await self.tour_repository.get_owned(tour_uuid, owner_id)
        if tour is None:
            raise NotFoundError("Tour not found")
        return tour

    async def update_tour(self, tour_uuid: uuid.UUID, update_data: TourUpdate, owner_id: uuid.UUID) -> Tour:
        tour = await self.get_tour(tour_uuid, owner_id)

        tour.update_details(title=update_data.title, description=update_data.description)
        if update_data.steps is not None:
            tour.replace_steps([step.to_entity() for step in update_data.steps])
        if update_data.is_public is not None:
            tour.is_public = update_data.is_public

        return await self._save(tour)

    async def delete_tour(self, tour_uuid: uuid.UUID, owner_id: uuid.UUID) -> None:
        if not await self.tour_repository.delete_owned(tour_uuid, owner_id):
            raise NotFoundError("Tour not found")
        logger.info(f"Deleted tour {tour_uuid}")

    async def toggle_visibility(self, tour_uuid: uuid.UUID, owner_id: uuid.UUID) -> Tour:
        tour = await self.get_tour(tour_uuid, owner_id)
        TourEditor(tour).toggle_visibility()
        return await self._save(tour)

    # Steps

    async def add_step(self, tour_uuid: uuid.UUID, owner_id: uuid.UUID) -> Tuple[Tour, int]:
        tour = await self.get_tour(tour_uuid, owner_id)
        editor = TourEditor(tour)
        editor.add_step()
        return await self._save(tour), editor.cursor

    async def update_step(
        self,
        tour_uuid: uuid.UUID,
        index: int,
        update_data: StepUpdate,
        owner_id: uuid.UUID
    ) -> Tour:
        tour, step = await self.get_step(tour_uuid, index, owner_id)
        changes = update_data.model_dump(exclude_unset=True)
        # An explicit null screenshot clears the image
        if "screenshot" in changes:
            set_screenshot(step, changes.pop("screenshot"))
        for field, value in changes.items():
            if value is not None:
                update_step_field(step, field, value)
        return await self._save(tour)

    async def delete_step(
        self,
        tour_uuid: uuid.UUID,
        index: int,
        owner_id: uuid.UUID,
        active_step: Optional[int] = None
    ) -> Tuple[Tour, Optional[int]]:
        """Remove the step at ``index``; returns the tour and the clamped cursor"""
        tour = await self.get_tour(tour_uuid, owner_id)
        editor = TourEditor(tour)
        if active_step is not None and editor.step(active_step) is not None:
            editor.select_step(active_step)

        if editor.delete_step(index) is None:
            raise NotFoundError("Step not found")
        return await self._save(tour), editor.cursor

    async def set_step_screenshot(
        self,
        tour_uuid: uuid.UUID,
        index: int,
        reference: str,
        owner_id: uuid.UUID
    ) -> Tour:
        tour, step = await self.get_step(tour_uuid, index, owner_id)
        set_screenshot(step, reference)
        return await self._save(tour)

    # Annotations

    async def place_annotation(
        self,
        tour_uuid: uuid.UUID,
        index: int,
        placement: AnnotationPlacement,
        owner_id: uuid.UUID
    ) -> Tuple[Tour, Annotation]:
        tour, step = await self.get_step(tour_uuid, index, owner_id)

        editor = AnnotationEditor()
        editor.arm(placement.kind)
        bounds = RenderedBounds(**placement.bounds.model_dump())
        annotation = editor.place_annotation(step, placement.pointer_x, placement.pointer_y, bounds)

        return await self._save(tour), annotation

    async def update_annotation(
        self,
        tour_uuid: uuid.UUID,
        index: int,
        annotation_id: str,
        update_data: AnnotationUpdate,
        owner_id: uuid.UUID
    ) -> Tuple[Tour, Annotation]:
        tour, step = await self.get_step(tour_uuid, index, owner_id)
        annotation = update_annotation(step, annotation_id, update_data.model_dump(exclude_none=True))
        if annotation is None:
            raise NotFoundError("Annotation not found")
        return await self._save(tour), annotation

    async def delete_annotation(
        self,
        tour_uuid: uuid.UUID,
        index: int,
        annotation_id: str,
        owner_id: uuid.UUID
    ) -> Tour:
        tour, step = await self.get_step(tour_uuid, index, owner_id)
        if not delete_annotation(step, annotation_id):
            return tour
        return await self._save(tour)

    async def get_step(self, tour_uuid: uuid.UUID, index: int, owner_id: uuid.UUID) -> Tuple[Tour, Step]:
        tour = await self.get_tour(tour_uuid, owner_id)
        step = TourEditor(tour).step(index)
        if step is None:
            raise NotFoundError("Step not found")
        return tour, step

    async def _save(self, tour: Tour) -> Tour:
        ensure_share_slug(tour)
        tour.touch()
        return await self.tour_repository.update(tour)


class AnalyticsService:
    """Engagement totals across an owner's tours"""

    TOP_TOURS_LIMIT = 5

    def __init__(self, session: AsyncSession):
        self.session = session
        self.tour_repository = TourRepository(session)

    async def get_overview(self, owner_id: uuid.UUID) -> dict:
        totals = await self.tour_repository.owner_totals(owner_id)
        top_tours = await self.tour_repository.top_by_views(owner_id, self.TOP_TOURS_LIMIT)
        return {
            "overview": totals,
            "top_tours": [
                {
                    "id": tour.uuid,
                    "title": tour.title,
                    "views": tour.views,
                    "clicks": tour.clicks,
                    "is_public": tour.is_public
                }
                for tour in top_tours
            ]
        }
