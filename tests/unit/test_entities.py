# tests/unit/test_entities.py
# Tour / Step / Annotation entity behaviour

import uuid

import pytest

from app.domains.tours.entities import Annotation, AnnotationKind, Step, Tour


class TestAnnotation:
    def test_kind_defaults_to_highlight(self):
        annotation = Annotation.from_dict({"x": 1, "y": 2, "width": 20, "height": 10})
        assert annotation.kind is AnnotationKind.HIGHLIGHT
        assert annotation.id

    def test_unknown_kind_is_rejected(self):
        with pytest.raises(ValueError):
            Annotation(id="a", x=0, y=0, width=10, height=10, kind="circle")

    @pytest.mark.parametrize("width,height", [(0, 10), (10, 0), (-5, 10)])
    def test_size_must_be_positive(self, width, height):
        with pytest.raises(ValueError):
            Annotation(id="a", x=0, y=0, width=width, height=height)

    def test_box_may_overflow_the_image(self):
        annotation = Annotation(id="a", x=95, y=-5, width=30, height=10)
        assert annotation.x + annotation.width > 100
        assert annotation.y < 0


class TestStep:
    def test_new_step_has_placeholders_and_no_screenshot(self):
        step = Step.create_step()
        assert step.title == Step.DEFAULT_TITLE
        assert step.description == Step.DEFAULT_DESCRIPTION
        assert step.screenshot is None
        assert step.annotations == []

    def test_from_dict_keeps_annotation_order(self):
        step = Step.from_dict({
            "id": "s1",
            "title": "Open settings",
            "annotations": [
                {"id": "first", "x": 1, "y": 1, "width": 5, "height": 5, "kind": "arrow"},
                {"id": "second", "x": 2, "y": 2, "width": 5, "height": 5, "kind": "text"},
            ],
        })
        assert [a.id for a in step.annotations] == ["first", "second"]
        assert step.find_annotation("second").kind is AnnotationKind.TEXT
        assert step.find_annotation("missing") is None

    def test_empty_screenshot_is_normalised_to_none(self):
        assert Step.from_dict({"id": "s1", "screenshot": ""}).screenshot is None


class TestTour:
    def test_create_tour_is_private_with_zero_counters(self):
        owner = uuid.uuid4()
        tour = Tour.create_tour(title="Demo", description="d", creator_id=owner)

        assert tour.is_public is False
        assert tour.share_slug is None
        assert (tour.views, tour.clicks) == (0, 0)
        assert tour.is_owned_by(owner)
        assert not tour.is_owned_by(uuid.uuid4())
        assert not tour.is_owned_by(None)

    def test_touch_moves_updated_at_forward(self):
        tour = Tour.create_tour(title="Demo", description="d", creator_id=uuid.uuid4())
        before = tour.updated_at
        tour.touch()
        assert tour.updated_at >= before

    def test_steps_json_has_no_order_field(self):
        tour = Tour.create_tour(title="Demo", description="d", creator_id=uuid.uuid4(), steps=[Step.create_step()])
        data = tour.steps_to_json()
        assert "order" not in data[0]
        assert Tour.steps_from_json(data) == tour.steps
