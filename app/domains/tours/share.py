"""Public share links.

A slug is minted the first time a tour becomes public and is kept for the
tour's lifetime. Hiding the tour only makes the slug inert: resolving it
goes through the ``is_public`` check, so publishing again revives the same
link.
"""
import logging
import secrets
import string
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import NotFoundError
from app.db.repositories.tour_repository import TourRepository
from app.domains.tours.entities import Tour

logger = logging.getLogger(__name__)

BASE36_ALPHABET = string.digits + string.ascii_lowercase
# Two fragments of 7 base-36 characters: 36**14 ~ 6e21 combinations
SLUG_FRAGMENT_LENGTH = 7


def _base36_fragment(length: int = SLUG_FRAGMENT_LENGTH) -> str:
    return "".join(secrets.choice(BASE36_ALPHABET) for _ in range(length))


def generate_share_slug() -> str:
    """Random URL-safe slug; uniqueness is enforced by the store's constraint"""
    return _base36_fragment() + _base36_fragment()


def ensure_share_slug(tour: Tour, generator: Callable[[], str] = generate_share_slug) -> bool:
    """Assign a slug to a public tour that has none. Returns True when assigned."""
    if not tour.is_public or tour.share_slug:
        return False
    tour.share_slug = generator()
    logger.info(f"Assigned share slug to tour {tour.uuid}")
    return True


class ShareLinkManager:
    """Resolves public slugs to tours"""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.tour_repository = TourRepository(session)

    async def find_public(self, slug: str) -> Optional[Tour]:
        if not slug:
            return None
        return await self.tour_repository.get_public_by_slug(slug)

    async def resolve(self, slug: str) -> Tour:
        """Public tour for the slug.

        Unknown, private and deleted tours all raise the same NotFoundError.
        """
        tour = await self.find_public(slug)
        if tour is None:
            raise NotFoundError("Tour not found")
        return tour
