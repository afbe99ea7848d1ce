from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
import uuid

from app.core.auth import get_current_user
from app.core.db import get_db
from app.domains.identity.entities import User
from app.domains.tours.schemas import (
    TourCreate, TourUpdate, TourResponse, TourListResponse,
    StepUpdate, StepMutationResponse, AnnotationPlacement, AnnotationUpdate,
    AnnotationMutationResponse, AnnotationResponse, UploadResponse
)
from app.domains.tours.services import TourService
from app.infrastructure.storage.screenshots import ScreenshotStorage, get_screenshot_storage

router = APIRouter(prefix="/tours", tags=["tours"])


async def _read_upload(file: UploadFile, storage: ScreenshotStorage) -> str:
    # Read one byte past the cap so oversized files are detected without buffering them whole
    payload = await file.read(storage.max_bytes + 1)
    return await storage.save(file.filename, file.content_type, payload)


@router.get("", response_model=TourListResponse)
async def list_tours(
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Tours of the current user, most recently updated first"""
    tour_service = TourService(db)
    tours, total = await tour_service.list_tours(
        current_user.uuid,
        limit=per_page,
        offset=(page - 1) * per_page
    )
    return TourListResponse(
        tours=[TourResponse.from_entity(tour) for tour in tours],
        total=total,
        page=page,
        per_page=per_page
    )


@router.post("", response_model=TourResponse, status_code=status.HTTP_201_CREATED)
async def create_tour(
    tour_data: TourCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    tour = await TourService(db).create_tour(tour_data, current_user.uuid)
    return TourResponse.from_entity(tour)


@router.post("/upload", response_model=UploadResponse)
async def upload_screenshot(
    screenshot: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
    storage: ScreenshotStorage = Depends(get_screenshot_storage)
):
    """Store an image and return the URL to reference from a step"""
    url = await _read_upload(screenshot, storage)
    return UploadResponse(url=url)


@router.get("/{tour_uuid}", response_model=TourResponse)
async def get_tour(
    tour_uuid: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    tour = await TourService(db).get_tour(tour_uuid, current_user.uuid)
    return TourResponse.from_entity(tour)


@router.put("/{tour_uuid}", response_model=TourResponse)
async def update_tour(
    tour_uuid: uuid.UUID,
    update_data: TourUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Save the tour as edited; the steps list replaces the stored one"""
    tour = await TourService(db).update_tour(tour_uuid, update_data, current_user.uuid)
    return TourResponse.from_entity(tour)


@router.delete("/{tour_uuid}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_tour(
    tour_uuid: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    await TourService(db).delete_tour(tour_uuid, current_user.uuid)


@router.patch("/{tour_uuid}/visibility", response_model=TourResponse)
async def toggle_visibility(
    tour_uuid: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Publish or hide the tour; publishing assigns the share slug once"""
    tour = await TourService(db).toggle_visibility(tour_uuid, current_user.uuid)
    return TourResponse.from_entity(tour)


# Steps
@router.post("/{tour_uuid}/steps", response_model=StepMutationResponse, status_code=status.HTTP_201_CREATED)
async def add_step(
    tour_uuid: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    tour, active_step = await TourService(db).add_step(tour_uuid, current_user.uuid)
    return StepMutationResponse(tour=TourResponse.from_entity(tour), active_step=active_step)


@router.patch("/{tour_uuid}/steps/{index}", response_model=TourResponse)
async def update_step(
    tour_uuid: uuid.UUID,
    index: int,
    update_data: StepUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    tour = await TourService(db).update_step(tour_uuid, index, update_data, current_user.uuid)
    return TourResponse.from_entity(tour)


@router.delete("/{tour_uuid}/steps/{index}", response_model=StepMutationResponse)
async def delete_step(
    tour_uuid: uuid.UUID,
    index: int,
    active: Optional[int] = Query(None, ge=0, description="Step the editor has selected"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Delete by position; the response carries the clamped selection"""
    tour, active_step = await TourService(db).delete_step(tour_uuid, index, current_user.uuid, active)
    return StepMutationResponse(tour=TourResponse.from_entity(tour), active_step=active_step)


@router.put("/{tour_uuid}/steps/{index}/screenshot", response_model=TourResponse)
async def replace_step_screenshot(
    tour_uuid: uuid.UUID,
    index: int,
    screenshot: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    storage: ScreenshotStorage = Depends(get_screenshot_storage)
):
    """Upload an image and attach it to the step; a rejected upload changes nothing"""
    tour_service = TourService(db)
    # Ownership and index are checked before anything is written to disk
    await tour_service.get_step(tour_uuid, index, current_user.uuid)
    url = await _read_upload(screenshot, storage)
    tour = await tour_service.set_step_screenshot(tour_uuid, index, url, current_user.uuid)
    return TourResponse.from_entity(tour)


# Annotations
@router.post(
    "/{tour_uuid}/steps/{index}/annotations",
    response_model=AnnotationMutationResponse,
    status_code=status.HTTP_201_CREATED
)
async def place_annotation(
    tour_uuid: uuid.UUID,
    index: int,
    placement: AnnotationPlacement,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Place an annotation where the pointer hit the rendered screenshot"""
    tour, annotation = await TourService(db).place_annotation(tour_uuid, index, placement, current_user.uuid)
    return AnnotationMutationResponse(
        tour=TourResponse.from_entity(tour),
        annotation=AnnotationResponse.model_validate(annotation)
    )


@router.patch("/{tour_uuid}/steps/{index}/annotations/{annotation_id}", response_model=AnnotationMutationResponse)
async def update_annotation(
    tour_uuid: uuid.UUID,
    index: int,
    annotation_id: str,
    update_data: AnnotationUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    tour, annotation = await TourService(db).update_annotation(
        tour_uuid, index, annotation_id, update_data, current_user.uuid
    )
    return AnnotationMutationResponse(
        tour=TourResponse.from_entity(tour),
        annotation=AnnotationResponse.model_validate(annotation)
    )


@router.delete("/{tour_uuid}/steps/{index}/annotations/{annotation_id}", response_model=TourResponse)
async def delete_annotation(
    tour_uuid: uuid.UUID,
    index: int,
    annotation_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Remove an annotation; deleting one that is already gone succeeds"""
    tour = await TourService(db).delete_annotation(tour_uuid, index, annotation_id, current_user.uuid)
    return TourResponse.from_entity(tour)
