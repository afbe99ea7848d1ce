"""Viewer-side playback state machine for a published tour.

Autoplay runs on the asyncio event loop. A controller owns at most one
pending dwell timer; pausing, manual navigation and ``close()`` cancel it
before anything else happens, so no stale advance can fire afterwards.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from app.core.config import settings
from app.domains.tours.entities import Annotation, Step, Tour

logger = logging.getLogger(__name__)


def _running_loop() -> Optional[asyncio.AbstractEventLoop]:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


@dataclass(frozen=True)
class PlaybackState:
    cursor: Optional[int]
    step_count: int
    playing: bool
    fullscreen: bool
    annotations_visible: bool


class PlaybackController:
    def __init__(
        self,
        tour: Tour,
        dwell_seconds: Optional[float] = None,
        on_change: Optional[Callable[[PlaybackState], None]] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None
    ):
        if dwell_seconds is None:
            dwell_seconds = settings.playback_dwell_seconds
        if dwell_seconds <= 0:
            raise ValueError("dwell_seconds must be positive")
        self.dwell_seconds = dwell_seconds
        self.on_change = on_change
        self._loop = loop or _running_loop()
        self._timer: Optional[asyncio.TimerHandle] = None
        self.load(tour)

    # -- state ---------------------------------------------------------

    def load(self, tour: Tour) -> None:
        """Reset to the initial state for a freshly loaded tour.

        Also reopens a controller that was closed.
        """
        self._cancel_timer()
        self.closed = False
        self.steps: List[Step] = list(tour.steps)
        self.cursor: Optional[int] = 0 if self.steps else None
        self.playing = False
        self.fullscreen = False
        self.annotations_visible = True
        self._notify()

    @property
    def step_count(self) -> int:
        return len(self.steps)

    @property
    def last_index(self) -> Optional[int]:
        return self.step_count - 1 if self.steps else None

    @property
    def current_step(self) -> Optional[Step]:
        if self.cursor is None:
            return None
        return self.steps[self.cursor]

    @property
    def visible_annotations(self) -> List[Annotation]:
        step = self.current_step
        if step is None or not self.annotations_visible:
            return []
        return list(step.annotations)

    @property
    def has_pending_timer(self) -> bool:
        return self._timer is not None

    def snapshot(self) -> PlaybackState:
        return PlaybackState(
            cursor=self.cursor,
            step_count=self.step_count,
            playing=self.playing,
            fullscreen=self.fullscreen,
            annotations_visible=self.annotations_visible,
        )

    # -- navigation ----------------------------------------------------

    def next(self) -> bool:
        """Move forward one step; no-op on the last step"""
        if self.closed or self.cursor is None or self.cursor >= self.last_index:
            return False
        self.cursor += 1
        self._restart_timer()
        self._notify()
        return True

    def prev(self) -> bool:
        """Move back one step; no-op on the first step"""
        if self.closed or self.cursor is None or self.cursor == 0:
            return False
        self.cursor -= 1
        self._restart_timer()
        self._notify()
        return True

    # -- toggles -------------------------------------------------------

    def toggle_play(self) -> bool:
        if self.closed or self.cursor is None:
            return self.playing
        self.playing = not self.playing
        self._restart_timer()
        self._notify()
        return self.playing

    def toggle_fullscreen(self) -> bool:
        if not self.closed:
            self.fullscreen = not self.fullscreen
            self._notify()
        return self.fullscreen

    def toggle_annotations(self) -> bool:
        if not self.closed:
            self.annotations_visible = not self.annotations_visible
            self._notify()
        return self.annotations_visible

    # -- autoplay ------------------------------------------------------

    def tick(self) -> bool:
        """Run one dwell expiry now. Returns True if the cursor advanced.

        Never advances past the last step; reaching or sitting on the last
        step stops autoplay.
        """
        self._cancel_timer()
        if self.closed or not self.playing or self.cursor is None:
            return False

        advanced = False
        if self.cursor < self.last_index:
            self.cursor += 1
            advanced = True
        if self.cursor >= self.last_index:
            self.playing = False
            logger.debug("Autoplay reached the last step")

        self._restart_timer()
        self._notify()
        return advanced

    def close(self) -> None:
        """Tear down: cancel the timer and ignore further input"""
        self._cancel_timer()
        self.playing = False
        self.closed = True

    def _restart_timer(self) -> None:
        self._cancel_timer()
        if self.closed or not self.playing:
            return
        # Without an event loop autoplay is driven by calling tick()
        if self._loop is None:
            return
        self._timer = self._loop.call_later(self.dwell_seconds, self._on_timer)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_timer(self) -> None:
        self._timer = None
        self.tick()

    def _notify(self) -> None:
        if self.on_change is not None:
            self.on_change(self.snapshot())
