"""Authoring commands: annotation placement and step list editing.

All commands mutate in-memory entities only; persisting the result is the
caller's job. Placement maps a pointer position on the rendered screenshot
to percentages so annotations do not depend on the image's native size.
"""
import logging
from dataclasses import dataclass
from typing import Optional, Dict, Any

from app.domains.tours.entities import Annotation, AnnotationKind, Step, Tour, new_local_id
from app.domains.tours.share import ensure_share_slug

logger = logging.getLogger(__name__)

DEFAULT_ANNOTATION_WIDTH = 20.0
DEFAULT_ANNOTATION_HEIGHT = 10.0
DEFAULT_ANNOTATION_TEXT = "Click here"

EDITABLE_ANNOTATION_FIELDS = ("text", "width", "height")
EDITABLE_STEP_FIELDS = ("title", "description")


@dataclass(frozen=True)
class RenderedBounds:
    """On-screen rectangle of the rendered screenshot"""
    left: float
    top: float
    width: float
    height: float

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise ValueError("Rendered bounds must have a positive size")

    def to_percent(self, pointer_x: float, pointer_y: float) -> tuple:
        # Not clamped: pointers outside the image give values outside 0..100
        x = (pointer_x - self.left) / self.width * 100
        y = (pointer_y - self.top) / self.height * 100
        return x, y


class AnnotationEditor:
    """Placement tool. Arming a kind allows exactly one placement."""

    def __init__(self):
        self.armed_kind: Optional[AnnotationKind] = None

    @property
    def is_armed(self) -> bool:
        return self.armed_kind is not None

    def arm(self, kind) -> None:
        self.armed_kind = AnnotationKind(kind)

    def disarm(self) -> None:
        self.armed_kind = None

    def place_annotation(
        self,
        step: Step,
        pointer_x: float,
        pointer_y: float,
        bounds: RenderedBounds
    ) -> Optional[Annotation]:
        """Create an annotation at the pointer; no-op when nothing is armed"""
        if self.armed_kind is None:
            return None

        x, y = bounds.to_percent(pointer_x, pointer_y)
        annotation = Annotation(
            id=new_local_id(),
            x=x,
            y=y,
            width=DEFAULT_ANNOTATION_WIDTH,
            height=DEFAULT_ANNOTATION_HEIGHT,
            text=DEFAULT_ANNOTATION_TEXT,
            kind=self.armed_kind,
        )
        step.annotations.append(annotation)
        self.disarm()
        return annotation


def place_annotation(
    step: Step,
    armed_kind,
    pointer_x: float,
    pointer_y: float,
    bounds: RenderedBounds
) -> Optional[Annotation]:
    """One-shot placement for callers that do not keep an editor around"""
    if armed_kind is None:
        return None
    editor = AnnotationEditor()
    editor.arm(armed_kind)
    return editor.place_annotation(step, pointer_x, pointer_y, bounds)


def update_annotation(step: Step, annotation_id: str, partial: Dict[str, Any]) -> Optional[Annotation]:
    """Merge text/width/height into the annotation. Returns None if it is absent.

    The whole update is rejected with ValueError if a size is not positive.
    """
    annotation = step.find_annotation(annotation_id)
    if annotation is None:
        return None

    changes = {field: partial[field] for field in EDITABLE_ANNOTATION_FIELDS if partial.get(field) is not None}
    for field in ("width", "height"):
        if field in changes and changes[field] <= 0:
            raise ValueError(f"Annotation {field} must be positive")

    for field, value in changes.items():
        setattr(annotation, field, value)
    return annotation


def delete_annotation(step: Step, annotation_id: str) -> bool:
    """Remove the annotation. Returns False when it was already gone."""
    remaining = [a for a in step.annotations if a.id != annotation_id]
    removed = len(remaining) != len(step.annotations)
    step.annotations = remaining
    return removed


def update_step_field(step: Step, field: str, value: str) -> None:
    if field not in EDITABLE_STEP_FIELDS:
        raise ValueError(f"Unsupported step field: {field}")
    setattr(step, field, value)


def set_screenshot(step: Step, reference: Optional[str]) -> None:
    # Existing annotations stay attached to the new image
    step.screenshot = reference


def toggle_visibility(tour: Tour) -> bool:
    """Flip visibility; publishing mints the share slug if needed"""
    tour.is_public = not tour.is_public
    ensure_share_slug(tour)
    logger.info(f"Tour {tour.uuid} is now {'public' if tour.is_public else 'private'}")
    return tour.is_public


class TourEditor:
    """Step list editing with an active-step cursor.

    Steps are only appended or removed, never reordered. ``cursor`` is
    None while the tour has no steps.
    """

    def __init__(self, tour: Tour, cursor: Optional[int] = None):
        self.tour = tour
        self.cursor = None
        if tour.steps:
            self.select_step(cursor or 0)

    @property
    def step_count(self) -> int:
        return len(self.tour.steps)

    @property
    def active_step(self) -> Optional[Step]:
        if self.cursor is None:
            return None
        return self.tour.steps[self.cursor]

    def step(self, index: int) -> Optional[Step]:
        if 0 <= index < self.step_count:
            return self.tour.steps[index]
        return None

    def select_step(self, index: int) -> None:
        if not 0 <= index < self.step_count:
            raise IndexError(f"Step index {index} out of range")
        self.cursor = index

    def add_step(self) -> Step:
        step = Step.create_step()
        self.tour.steps.append(step)
        self.cursor = self.step_count - 1
        return step

    def delete_step(self, index: int) -> Optional[Step]:
        """Remove by position and clamp the cursor into the new bounds"""
        if not 0 <= index < self.step_count:
            return None

        removed = self.tour.steps.pop(index)
        if not self.tour.steps:
            self.cursor = None
        elif self.cursor is not None:
            self.cursor = max(0, min(self.cursor, self.step_count - 1))
        return removed

    def toggle_visibility(self) -> bool:
        return toggle_visibility(self.tour)
