from pydantic import BaseModel, Field, field_validator, ConfigDict
from typing import Optional, List
from datetime import datetime
import uuid

from app.domains.tours.entities import Annotation, AnnotationKind, Step, Tour


def _strip_required(v: str, name: str) -> str:
    if not v or not v.strip():
        raise ValueError(f'{name} cannot be empty')
    return v.strip()


def _check_unique_ids(items, name: str):
    ids = [item.id for item in items if item.id]
    if len(ids) != len(set(ids)):
        raise ValueError(f'{name} ids must be unique')
    return items


class AnnotationSchema(BaseModel):
    id: Optional[str] = None
    x: float
    y: float
    width: float = Field(..., gt=0)
    height: float = Field(..., gt=0)
    text: str = ""
    kind: AnnotationKind = AnnotationKind.HIGHLIGHT

    def to_entity(self) -> Annotation:
        return Annotation.from_dict(self.model_dump(mode="json"))


class StepSchema(BaseModel):
    id: Optional[str] = None
    title: str = Field(default="", max_length=255)
    description: str = ""
    screenshot: Optional[str] = None
    annotations: List[AnnotationSchema] = Field(default_factory=list)

    @field_validator('annotations')
    @classmethod
    def validate_annotations(cls, v):
        return _check_unique_ids(v, 'Annotation')

    def to_entity(self) -> Step:
        return Step.from_dict(self.model_dump(mode="json"))


class TourCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    steps: List[StepSchema] = Field(default_factory=list)

    @field_validator('steps')
    @classmethod
    def validate_steps(cls, v):
        return _check_unique_ids(v, 'Step')

    @field_validator('title')
    @classmethod
    def validate_title(cls, v):
        return _strip_required(v, 'Title')

    @field_validator('description')
    @classmethod
    def validate_description(cls, v):
        return _strip_required(v, 'Description')


class TourUpdate(BaseModel):
    """Whole-document save from the editor; omitted fields are kept"""
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, min_length=1)
    steps: Optional[List[StepSchema]] = None
    is_public: Optional[bool] = None

    @field_validator('steps')
    @classmethod
    def validate_steps(cls, v):
        return _check_unique_ids(v, 'Step') if v is not None else v

    @field_validator('title')
    @classmethod
    def validate_title(cls, v):
        return _strip_required(v, 'Title') if v is not None else v

    @field_validator('description')
    @classmethod
    def validate_description(cls, v):
        return _strip_required(v, 'Description') if v is not None else v


class StepUpdate(BaseModel):
    title: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    # Reference returned by the upload endpoint
    screenshot: Optional[str] = None


class RenderedBoundsSchema(BaseModel):
    left: float = 0
    top: float = 0
    width: float = Field(..., gt=0)
    height: float = Field(..., gt=0)


class AnnotationPlacement(BaseModel):
    """Pointer click on the rendered screenshot while a kind is armed"""
    kind: AnnotationKind = AnnotationKind.HIGHLIGHT
    pointer_x: float
    pointer_y: float
    bounds: RenderedBoundsSchema


class AnnotationUpdate(BaseModel):
    text: Optional[str] = None
    width: Optional[float] = Field(None, gt=0)
    height: Optional[float] = Field(None, gt=0)


class AnnotationResponse(BaseModel):
    id: str
    x: float
    y: float
    width: float
    height: float
    text: str
    kind: AnnotationKind

    model_config = ConfigDict(from_attributes=True)


class StepResponse(BaseModel):
    id: str
    order: int
    title: str
    description: str
    screenshot: Optional[str]
    annotations: List[AnnotationResponse]

    @classmethod
    def from_entity(cls, step: Step, index: int) -> "StepResponse":
        return cls(
            id=step.id,
            order=index,
            title=step.title,
            description=step.description,
            screenshot=step.screenshot,
            annotations=[AnnotationResponse.model_validate(a) for a in step.annotations]
        )


class TourBaseResponse(BaseModel):
    id: uuid.UUID
    title: str
    description: str
    steps: List[StepResponse]
    is_public: bool
    share_slug: Optional[str]
    views: int
    clicks: int
    created_at: datetime
    updated_at: datetime

    @classmethod
    def _fields_from(cls, tour: Tour) -> dict:
        return dict(
            id=tour.uuid,
            title=tour.title,
            description=tour.description,
            steps=[StepResponse.from_entity(step, i) for i, step in enumerate(tour.steps)],
            is_public=tour.is_public,
            share_slug=tour.share_slug,
            views=tour.views,
            clicks=tour.clicks,
            created_at=tour.created_at,
            updated_at=tour.updated_at
        )


class PublicTourResponse(TourBaseResponse):
    """Viewer payload; names the author but never exposes their id"""
    creator_username: Optional[str] = None

    @classmethod
    def from_entity(cls, tour: Tour) -> "PublicTourResponse":
        return cls(creator_username=tour.creator_username, **cls._fields_from(tour))


class TourResponse(TourBaseResponse):
    creator_id: uuid.UUID

    @classmethod
    def from_entity(cls, tour: Tour) -> "TourResponse":
        return cls(creator_id=tour.creator_id, **cls._fields_from(tour))


class TourListResponse(BaseModel):
    tours: List[TourResponse]
    total: int
    page: int
    per_page: int


class StepMutationResponse(BaseModel):
    """Tour after a step edit plus the step the editor should focus"""
    tour: TourResponse
    active_step: Optional[int]


class AnnotationMutationResponse(BaseModel):
    tour: TourResponse
    annotation: AnnotationResponse


class UploadResponse(BaseModel):
    url: str


class ClickResponse(BaseModel):
    success: bool = True


class AnalyticsOverview(BaseModel):
    total_tours: int
    total_views: int
    total_clicks: int
    public_tours: int


class TopTour(BaseModel):
    id: uuid.UUID
    title: str
    views: int
    clicks: int
    is_public: bool


class AnalyticsResponse(BaseModel):
    overview: AnalyticsOverview
    top_tours: List[TopTour]
