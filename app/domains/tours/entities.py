import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, List, Dict, Any


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_local_id() -> str:
    """Identifier for steps and annotations; unique within the owning list"""
    return uuid.uuid4().hex


class AnnotationKind(str, Enum):
    """Closed set of overlay kinds an annotation can render as"""
    HIGHLIGHT = "highlight"
    ARROW = "arrow"
    TEXT = "text"


class Annotation:
    """Overlay positioned in percent of the screenshot's rendered size.

    The box is allowed to extend past the image edges; only width and
    height are constrained (strictly positive).
    """

    def __init__(
        self,
        id: str,
        x: float,
        y: float,
        width: float,
        height: float,
        text: str = "",
        kind: AnnotationKind = AnnotationKind.HIGHLIGHT
    ):
        if width <= 0 or height <= 0:
            raise ValueError("Annotation width and height must be positive")
        self.id = id
        self.x = x
        self.y = y
        self.width = width
        self.height = height
        self.text = text
        self.kind = AnnotationKind(kind)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "text": self.text,
            "kind": self.kind.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Annotation":
        return cls(
            id=data.get("id") or new_local_id(),
            x=data["x"],
            y=data["y"],
            width=data["width"],
            height=data["height"],
            text=data.get("text", ""),
            kind=data.get("kind") or AnnotationKind.HIGHLIGHT,
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, Annotation):
            return False
        return self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        return f"Annotation(id={self.id}, kind={self.kind.value}, x={self.x}, y={self.y})"


class Step:
    """One screenshot with its description and annotations"""

    DEFAULT_TITLE = "New Step"
    DEFAULT_DESCRIPTION = "Add your description here..."

    def __init__(
        self,
        id: str,
        title: str = "",
        description: str = "",
        screenshot: Optional[str] = None,
        annotations: Optional[List[Annotation]] = None
    ):
        self.id = id
        self.title = title
        self.description = description
        self.screenshot = screenshot
        self.annotations = annotations if annotations is not None else []

    def find_annotation(self, annotation_id: str) -> Optional[Annotation]:
        for annotation in self.annotations:
            if annotation.id == annotation_id:
                return annotation
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "screenshot": self.screenshot,
            "annotations": [a.to_dict() for a in self.annotations],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Step":
        return cls(
            id=data.get("id") or new_local_id(),
            title=data.get("title", ""),
            description=data.get("description", ""),
            screenshot=data.get("screenshot") or None,
            annotations=[Annotation.from_dict(a) for a in data.get("annotations", [])],
        )

    @classmethod
    def create_step(cls) -> "Step":
        """New step with placeholder text and no screenshot"""
        return cls(
            id=new_local_id(),
            title=cls.DEFAULT_TITLE,
            description=cls.DEFAULT_DESCRIPTION,
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, Step):
            return False
        return self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        return f"Step(id={self.id}, title={self.title}, annotations={len(self.annotations)})"


class Tour:
    """Ordered collection of steps owned by a creator.

    Array position in ``steps`` is the only ordering; there is no stored
    order field. ``share_slug`` is assigned on the first transition to
    public and never cleared afterwards.
    """

    def __init__(
        self,
        uuid: uuid.UUID,
        title: str,
        description: str,
        creator_id: uuid.UUID,
        steps: Optional[List[Step]] = None,
        is_public: bool = False,
        share_slug: Optional[str] = None,
        views: int = 0,
        clicks: int = 0,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
        creator_username: Optional[str] = None
    ):
        self.uuid = uuid
        self.title = title
        self.description = description
        self.creator_id = creator_id
        self.steps = steps if steps is not None else []
        self.is_public = is_public
        self.share_slug = share_slug
        self.views = views
        self.clicks = clicks
        self.created_at = created_at or utcnow()
        self.updated_at = updated_at or utcnow()
        # Only filled in for public lookups
        self.creator_username = creator_username

    def is_owned_by(self, user_id: uuid.UUID) -> bool:
        return user_id is not None and self.creator_id == user_id

    def update_details(self, title: Optional[str] = None, description: Optional[str] = None) -> None:
        if title is not None:
            self.title = title
        if description is not None:
            self.description = description

    def replace_steps(self, steps: List[Step]) -> None:
        self.steps = list(steps)

    def touch(self) -> None:
        self.updated_at = utcnow()

    def steps_to_json(self) -> List[Dict[str, Any]]:
        return [step.to_dict() for step in self.steps]

    @staticmethod
    def steps_from_json(data: Optional[List[Dict[str, Any]]]) -> List[Step]:
        return [Step.from_dict(item) for item in (data or [])]

    @classmethod
    def create_tour(
        cls,
        title: str,
        description: str,
        creator_id: uuid.UUID,
        steps: Optional[List[Step]] = None
    ) -> "Tour":
        """New private tour with zeroed counters"""
        return cls(
            uuid=uuid.uuid4(),
            title=title,
            description=description,
            creator_id=creator_id,
            steps=steps,
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, Tour):
            return False
        return self.uuid == other.uuid

    def __repr__(self) -> str:
        return f"Tour(uuid={self.uuid}, title={self.title}, steps={len(self.steps)}, public={self.is_public})"
