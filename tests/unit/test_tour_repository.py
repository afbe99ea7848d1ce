# tests/unit/test_tour_repository.py
# Tour persistence, share-link resolution and engagement counters

import uuid

import pytest

from app.core.errors import NotFoundError, StoreFailure
from app.db.repositories.tour_repository import TourRepository
from app.domains.tours.engagement import EngagementTracker
from app.domains.tours.entities import Annotation, Step, Tour
from app.domains.tours.share import ShareLinkManager


async def save_tour(session, owner, is_public=False, slug=None, title="Demo") -> Tour:
    step = Step.create_step()
    step.annotations.append(Annotation(id="a1", x=10, y=20, width=20, height=10, text="Click here"))
    tour = Tour.create_tour(title=title, description="Walkthrough", creator_id=owner.uuid, steps=[step])
    tour.is_public = is_public
    tour.share_slug = slug
    return await TourRepository(session).create(tour)


class TestTourRepository:
    async def test_create_round_trips_steps(self, db_session, owner):
        created = await save_tour(db_session, owner)
        loaded = await TourRepository(db_session).get_by_uuid(created.uuid)

        assert loaded.title == "Demo"
        assert loaded.steps == created.steps
        assert loaded.steps[0].annotations[0].text == "Click here"

    async def test_get_owned_hides_other_owners(self, db_session, owner):
        created = await save_tour(db_session, owner)
        repository = TourRepository(db_session)

        assert await repository.get_owned(created.uuid, owner.uuid) is not None
        assert await repository.get_owned(created.uuid, uuid.uuid4()) is None

    async def test_public_lookup_requires_public_flag(self, db_session, owner):
        await save_tour(db_session, owner, is_public=False, slug="hiddenslug")
        repository = TourRepository(db_session)

        assert await repository.get_by_slug("hiddenslug") is not None
        assert await repository.get_public_by_slug("hiddenslug") is None

    async def test_duplicate_slug_is_a_store_failure(self, db_session, owner):
        await save_tour(db_session, owner, is_public=True, slug="sameslug")
        with pytest.raises(StoreFailure):
            await save_tour(db_session, owner, is_public=True, slug="sameslug")

    async def test_delete_owned(self, db_session, owner):
        created = await save_tour(db_session, owner)
        repository = TourRepository(db_session)

        assert await repository.delete_owned(created.uuid, uuid.uuid4()) is False
        assert await repository.delete_owned(created.uuid, owner.uuid) is True
        assert await repository.get_by_uuid(created.uuid) is None

    async def test_unknown_counter_rejected(self, db_session):
        with pytest.raises(ValueError):
            await TourRepository(db_session).increment_counter("slug", "shares")

    async def test_owner_totals(self, db_session, owner):
        await save_tour(db_session, owner, is_public=True, slug="first")
        await save_tour(db_session, owner)
        repository = TourRepository(db_session)
        await repository.increment_counter("first", "views")
        await repository.increment_counter("first", "clicks")

        totals = await repository.owner_totals(owner.uuid)

        assert totals == {"total_tours": 2, "total_views": 1, "total_clicks": 1, "public_tours": 1}


class TestShareLinks:
    async def test_resolve_public_tour(self, db_session, owner):
        created = await save_tour(db_session, owner, is_public=True, slug="abc123")
        tour = await ShareLinkManager(db_session).resolve("abc123")
        assert tour.uuid == created.uuid
        assert tour.creator_username == "svc_user"

    @pytest.mark.parametrize("slug", ["unknown", ""])
    async def test_unknown_slug_not_found(self, db_session, slug):
        with pytest.raises(NotFoundError):
            await ShareLinkManager(db_session).resolve(slug)

    async def test_private_tour_not_found(self, db_session, owner):
        await save_tour(db_session, owner, is_public=False, slug="private1")
        with pytest.raises(NotFoundError):
            await ShareLinkManager(db_session).resolve("private1")


class TestEngagement:
    async def test_each_view_counts(self, db_session, owner):
        await save_tour(db_session, owner, is_public=True, slug="viewme")
        tracker = EngagementTracker(db_session)

        await tracker.record_view("viewme")
        tour = await tracker.record_view("viewme")

        assert tour.views == 2
        stored = await TourRepository(db_session).get_by_slug("viewme")
        assert stored.views == 2

    async def test_view_of_private_tour_is_not_counted(self, db_session, owner):
        await save_tour(db_session, owner, is_public=False, slug="private2")
        with pytest.raises(NotFoundError):
            await EngagementTracker(db_session).record_view("private2")

        stored = await TourRepository(db_session).get_by_slug("private2")
        assert stored.views == 0

    async def test_click_counts_regardless_of_visibility(self, db_session, owner):
        await save_tour(db_session, owner, is_public=False, slug="private3")
        assert await EngagementTracker(db_session).record_click("private3") is True

        stored = await TourRepository(db_session).get_by_slug("private3")
        assert stored.clicks == 1

    async def test_click_on_unknown_slug_changes_nothing(self, db_session, owner):
        await save_tour(db_session, owner, is_public=True, slug="known")
        assert await EngagementTracker(db_session).record_click("nosuchslug") is False

        stored = await TourRepository(db_session).get_by_slug("known")
        assert stored.clicks == 0

    async def test_counters_do_not_touch_updated_at(self, db_session, owner):
        created = await save_tour(db_session, owner, is_public=True, slug="stamp")
        await EngagementTracker(db_session).record_view("stamp")

        stored = await TourRepository(db_session).get_by_slug("stamp")
        assert stored.updated_at.replace(tzinfo=None) == created.updated_at.replace(tzinfo=None)
