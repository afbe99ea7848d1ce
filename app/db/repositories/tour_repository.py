from typing import Optional, List, Dict, Any, TYPE_CHECKING
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, delete, func, case
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
import logging
import uuid

from app.core.errors import StoreFailure
from app.db.models.tour import Tour as TourModel
from app.db.models.user import User as UserModel

if TYPE_CHECKING:
    from app.domains.tours.entities import Tour

logger = logging.getLogger(__name__)

COUNTER_FIELDS = ("views", "clicks")


class TourRepository:
    """Persistence for tours; steps live in a JSON column of the tour row"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, tour: "Tour") -> "Tour":
        db_tour = TourModel(
            uuid=tour.uuid,
            title=tour.title,
            description=tour.description,
            creator_id=tour.creator_id,
            steps=tour.steps_to_json(),
            is_public=tour.is_public,
            share_slug=tour.share_slug,
            views=tour.views,
            clicks=tour.clicks,
            created_at=tour.created_at,
            updated_at=tour.updated_at
        )

        self.session.add(db_tour)
        await self._commit("create tour")
        await self.session.refresh(db_tour)
        return self._to_domain(db_tour)

    async def get_by_uuid(self, tour_uuid: uuid.UUID) -> Optional["Tour"]:
        return await self._fetch_one(select(TourModel).where(TourModel.uuid == tour_uuid))

    async def get_owned(self, tour_uuid: uuid.UUID, owner_id: uuid.UUID) -> Optional["Tour"]:
        """Tour by id, only if it belongs to the owner"""
        return await self._fetch_one(
            select(TourModel).where(TourModel.uuid == tour_uuid, TourModel.creator_id == owner_id)
        )

    async def get_by_slug(self, slug: str) -> Optional["Tour"]:
        return await self._fetch_one(select(TourModel).where(TourModel.share_slug == slug))

    async def get_public_by_slug(self, slug: str) -> Optional["Tour"]:
        """Public tour for the slug, with the author's username attached"""
        stmt = (
            select(TourModel, UserModel.username)
            .outerjoin(UserModel, TourModel.creator_id == UserModel.uuid)
            .where(TourModel.share_slug == slug, TourModel.is_public.is_(True))
        )
        try:
            result = await self.session.execute(stmt.execution_options(populate_existing=True))
        except SQLAlchemyError as e:
            raise self._store_failure("load tour", e)
        row = result.one_or_none()
        if row is None:
            return None

        db_tour, username = row
        tour = self._to_domain(db_tour)
        tour.creator_username = username
        return tour

    async def get_by_owner(self, owner_id: uuid.UUID, limit: int = 100, offset: int = 0) -> List["Tour"]:
        """Owner's tours, most recently updated first"""
        try:
            result = await self.session.execute(
                select(TourModel)
                .where(TourModel.creator_id == owner_id)
                .order_by(TourModel.updated_at.desc())
                .offset(offset)
                .limit(limit)
            )
        except SQLAlchemyError as e:
            raise self._store_failure("list tours", e)
        return [self._to_domain(tour) for tour in result.scalars().all()]

    async def count_by_owner(self, owner_id: uuid.UUID) -> int:
        try:
            result = await self.session.execute(
                select(func.count(TourModel.uuid)).where(TourModel.creator_id == owner_id)
            )
        except SQLAlchemyError as e:
            raise self._store_failure("count tours", e)
        return result.scalar() or 0

    async def owner_totals(self, owner_id: uuid.UUID) -> Dict[str, int]:
        """Aggregate counters across the owner's tours"""
        try:
            result = await self.session.execute(
                select(
                    func.count(TourModel.uuid),
                    func.coalesce(func.sum(TourModel.views), 0),
                    func.coalesce(func.sum(TourModel.clicks), 0),
                    func.coalesce(func.sum(case((TourModel.is_public.is_(True), 1), else_=0)), 0),
                ).where(TourModel.creator_id == owner_id)
            )
        except SQLAlchemyError as e:
            raise self._store_failure("aggregate tours", e)
        total_tours, total_views, total_clicks, public_tours = result.one()
        return {
            "total_tours": int(total_tours),
            "total_views": int(total_views),
            "total_clicks": int(total_clicks),
            "public_tours": int(public_tours),
        }

    async def top_by_views(self, owner_id: uuid.UUID, limit: int = 5) -> List["Tour"]:
        try:
            result = await self.session.execute(
                select(TourModel)
                .where(TourModel.creator_id == owner_id)
                .order_by(TourModel.views.desc(), TourModel.updated_at.desc())
                .limit(limit)
            )
        except SQLAlchemyError as e:
            raise self._store_failure("rank tours", e)
        return [self._to_domain(tour) for tour in result.scalars().all()]

    async def update(self, tour: "Tour") -> "Tour":
        """Save the whole document; last writer wins"""
        stmt = (
            update(TourModel)
            .where(TourModel.uuid == tour.uuid)
            .values(
                title=tour.title,
                description=tour.description,
                steps=tour.steps_to_json(),
                is_public=tour.is_public,
                share_slug=tour.share_slug,
                updated_at=tour.updated_at
            )
        )

        await self._execute_and_commit(stmt, "update tour")
        return await self.get_by_uuid(tour.uuid)

    async def delete_owned(self, tour_uuid: uuid.UUID, owner_id: uuid.UUID) -> bool:
        stmt = delete(TourModel).where(TourModel.uuid == tour_uuid, TourModel.creator_id == owner_id)
        result = await self._execute_and_commit(stmt, "delete tour")
        return result.rowcount > 0

    async def increment_counter(self, slug: str, field: str, public_only: bool = False) -> bool:
        """Atomically add one to a counter of the tour holding the slug.

        Returns False when no tour matched.
        """
        if field not in COUNTER_FIELDS:
            raise ValueError(f"Unknown counter: {field}")

        column = getattr(TourModel, field)
        stmt = update(TourModel).where(TourModel.share_slug == slug).values({column: column + 1})
        if public_only:
            stmt = stmt.where(TourModel.is_public.is_(True))

        result = await self._execute_and_commit(stmt, f"increment {field}")
        return result.rowcount > 0

    async def _fetch_one(self, stmt) -> Optional["Tour"]:
        try:
            # Counter updates bypass the identity map; always reload the row
            result = await self.session.execute(stmt.execution_options(populate_existing=True))
        except SQLAlchemyError as e:
            raise self._store_failure("load tour", e)
        db_tour = result.scalar_one_or_none()
        return self._to_domain(db_tour) if db_tour else None

    async def _execute_and_commit(self, stmt, action: str):
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise self._store_failure(action, e)
        await self._commit(action)
        return result

    async def _commit(self, action: str) -> None:
        try:
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            logger.warning(f"Store rejected write ({action}): {e.orig}")
            raise StoreFailure("Tour could not be saved: conflicting share link or owner")
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise self._store_failure(action, e)

    def _store_failure(self, action: str, error: Exception) -> StoreFailure:
        logger.error(f"Store failure during {action}: {error}")
        return StoreFailure()

    def _to_domain(self, db_tour: TourModel) -> "Tour":
        from app.domains.tours.entities import Tour

        return Tour(
            uuid=db_tour.uuid,
            title=db_tour.title,
            description=db_tour.description,
            creator_id=db_tour.creator_id,
            steps=Tour.steps_from_json(db_tour.steps),
            is_public=db_tour.is_public,
            share_slug=db_tour.share_slug,
            views=db_tour.views,
            clicks=db_tour.clicks,
            created_at=db_tour.created_at,
            updated_at=db_tour.updated_at
        )
