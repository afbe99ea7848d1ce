"""View and click counters for shared tours.

Counts are approximate by contract: no per-viewer dedup, and every call is
one increment. The store applies each increment atomically, so concurrent
viewers do not overwrite each other's counts.
"""
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.db.repositories.tour_repository import TourRepository
from app.domains.tours.entities import Tour
from app.domains.tours.share import ShareLinkManager

logger = logging.getLogger(__name__)


class EngagementTracker:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.tour_repository = TourRepository(session)
        self.share_links = ShareLinkManager(session)

    async def record_view(self, slug: str) -> Tour:
        """Resolve a public slug and count one view.

        Raises NotFoundError for anything that is not a public tour.
        """
        tour = await self.share_links.resolve(slug)
        if await self.tour_repository.increment_counter(slug, "views", public_only=True):
            tour.views += 1
        return tour

    async def record_click(self, slug: str) -> bool:
        """Count a click for any tour holding the slug, public or not.

        Unknown slugs are ignored; the return value is for callers that
        care, the HTTP layer reports success either way.
        """
        if not slug:
            return False
        recorded = await self.tour_repository.increment_counter(slug, "clicks")
        if not recorded:
            logger.debug("Click reported for unknown share slug")
        return recorded
