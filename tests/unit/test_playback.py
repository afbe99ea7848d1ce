# tests/unit/test_playback.py
# Viewer playback state machine and autoplay timer lifecycle

import asyncio
import uuid

import pytest

from app.core.config import settings
from app.domains.tours.entities import Annotation, Step, Tour
from app.domains.tours.playback import PlaybackController


class FakeHandle:
    def __init__(self, delay, callback):
        self.delay = delay
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeLoop:
    """Records scheduled timers so tests can fire them by hand"""

    def __init__(self):
        self.handles = []

    def call_later(self, delay, callback):
        handle = FakeHandle(delay, callback)
        self.handles.append(handle)
        return handle

    @property
    def active(self):
        return [h for h in self.handles if not h.cancelled]

    def fire(self):
        handle = self.active[-1]
        handle.cancelled = True
        handle.callback()


def make_tour(step_count: int) -> Tour:
    steps = [Step.create_step() for _ in range(step_count)]
    return Tour.create_tour(title="Demo", description="d", creator_id=uuid.uuid4(), steps=steps)


@pytest.fixture
def loop():
    return FakeLoop()


def make_controller(step_count, loop, **kwargs) -> PlaybackController:
    return PlaybackController(make_tour(step_count), dwell_seconds=4.0, loop=loop, **kwargs)


class TestNavigation:
    def test_initial_state(self, loop):
        controller = make_controller(3, loop)
        assert controller.cursor == 0
        assert controller.playing is False
        assert controller.fullscreen is False
        assert controller.annotations_visible is True
        assert loop.handles == []

    def test_empty_tour_has_no_cursor(self, loop):
        controller = make_controller(0, loop)
        assert controller.cursor is None
        assert controller.current_step is None
        assert controller.next() is False
        assert controller.prev() is False
        assert controller.toggle_play() is False
        assert loop.handles == []

    def test_next_and_prev_clamp(self, loop):
        controller = make_controller(2, loop)
        assert controller.prev() is False
        assert controller.next() is True
        assert controller.next() is False
        assert controller.cursor == 1
        assert controller.prev() is True
        assert controller.cursor == 0

    def test_load_resets_state(self, loop):
        controller = make_controller(3, loop)
        controller.next()
        controller.toggle_play()
        controller.toggle_fullscreen()

        controller.load(make_tour(1))

        assert controller.cursor == 0
        assert controller.playing is False
        assert controller.fullscreen is False
        assert loop.active == []


class TestToggles:
    def test_toggles_are_independent(self, loop):
        controller = make_controller(2, loop)
        controller.toggle_fullscreen()
        controller.toggle_annotations()

        assert controller.fullscreen is True
        assert controller.annotations_visible is False
        assert controller.playing is False
        assert controller.cursor == 0

    def test_hidden_annotations_are_not_visible(self, loop):
        tour = make_tour(1)
        tour.steps[0].annotations = [Annotation(id="a1", x=10, y=10, width=20, height=10)]
        controller = PlaybackController(tour, loop=loop)
        assert [a.id for a in controller.visible_annotations] == ["a1"]
        controller.toggle_annotations()
        assert controller.visible_annotations == []

    def test_on_change_receives_snapshots(self, loop):
        states = []
        controller = make_controller(2, loop, on_change=states.append)
        controller.next()
        controller.toggle_fullscreen()

        assert [s.cursor for s in states] == [0, 1, 1]
        assert states[-1].fullscreen is True


class TestAutoplay:
    def test_play_schedules_one_timer(self, loop):
        controller = make_controller(3, loop)
        controller.toggle_play()
        assert len(loop.active) == 1
        assert loop.active[0].delay == 4.0

    def test_timer_advances_and_stops_at_last_step(self, loop):
        controller = make_controller(3, loop)
        controller.toggle_play()

        loop.fire()
        assert controller.cursor == 1
        assert controller.playing is True
        assert len(loop.active) == 1

        loop.fire()
        assert controller.cursor == 2
        assert controller.playing is False
        assert loop.active == []

    def test_play_on_last_step_stops_without_advancing(self, loop):
        controller = make_controller(2, loop)
        controller.next()
        controller.toggle_play()

        assert controller.tick() is False
        assert controller.cursor == 1
        assert controller.playing is False

    def test_pause_cancels_pending_timer(self, loop):
        controller = make_controller(3, loop)
        controller.toggle_play()
        controller.toggle_play()

        assert controller.playing is False
        assert loop.active == []
        assert controller.has_pending_timer is False

    def test_manual_next_while_playing_restarts_timer(self, loop):
        controller = make_controller(4, loop)
        controller.toggle_play()
        first = loop.active[0]

        controller.next()

        assert first.cancelled
        assert controller.playing is True
        assert len(loop.active) == 1

    def test_never_more_than_one_timer(self, loop):
        controller = make_controller(5, loop)
        controller.toggle_play()
        controller.next()
        controller.prev()
        controller.toggle_fullscreen()
        loop.fire()
        assert len(loop.active) == 1

    def test_close_cancels_timer_and_ignores_input(self, loop):
        controller = make_controller(3, loop)
        controller.toggle_play()
        controller.close()

        assert loop.active == []
        assert controller.playing is False
        assert controller.next() is False
        assert controller.toggle_play() is False
        assert loop.active == []

    def test_default_dwell_comes_from_settings(self, loop):
        controller = PlaybackController(make_tour(2), loop=loop)
        controller.toggle_play()
        assert loop.active[0].delay == settings.playback_dwell_seconds

    def test_without_event_loop_tick_drives_autoplay(self):
        controller = PlaybackController(make_tour(3), dwell_seconds=4.0)

        assert controller.toggle_play() is True
        assert controller.next() is True
        assert controller.has_pending_timer is False

        assert controller.tick() is True
        assert controller.cursor == 2
        assert controller.playing is False

    def test_load_reopens_closed_controller(self, loop):
        controller = make_controller(2, loop)
        controller.close()

        controller.load(make_tour(3))

        assert controller.closed is False
        assert controller.next() is True
        assert controller.toggle_play() is True
        assert len(loop.active) == 1

    def test_dwell_must_be_positive(self, loop):
        with pytest.raises(ValueError):
            PlaybackController(make_tour(1), dwell_seconds=0, loop=loop)


async def test_autoplay_runs_on_event_loop():
    controller = PlaybackController(make_tour(3), dwell_seconds=0.01)
    controller.toggle_play()

    await asyncio.sleep(0.2)

    assert controller.cursor == 2
    assert controller.playing is False
    assert controller.has_pending_timer is False
    controller.close()
