from fastapi import APIRouter, Depends, status, Query
from typing import List, Optional

from apps.job_cards.schemas import (
    JobCardCreate, JobCardUpdate, JobCardResponse, JobCardListResponse,
    EngineerAssignment, JobCardAssignment, JobStatusUpdate, WorkProgressUpdate, QualityCheckRequest,
)
from apps.job_cards.services import JobCardService, get_job_card_service
from apps.job_cards.models import JobStatus
from apps.auth.services import Actor, get_current_actor, get_current_admin

router = APIRouter()

# ============ STATIC ROUTES FIRST (before /{job_card_id}) ============

@router.post(
    "/",
    response_model=JobCardResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a job card",
    description="Open a job card for a vehicle. The job card number is the next one of the garage."
)
def create_job_card(
    job_card: JobCardCreate,
    service: JobCardService = Depends(get_job_card_service),
    actor: Actor = Depends(get_current_actor),
):
    db_job_card = service.create_job_card(job_card, actor)
    return service.job_card_to_response(db_job_card)


@router.get(
    "/garage/{garage_id}",
    response_model=JobCardListResponse,
    summary="List job cards of a garage",
    description="Staff only see the job cards they created"
)
def list_job_cards(
    garage_id: int,
    skip: int = Query(0, ge=0, description="Number of items to skip"),
    limit: int = Query(100, ge=1, le=1000, description="Number of items to return"),
    status_filter: Optional[JobStatus] = Query(None, alias="status", description="Filter by status"),
    service: JobCardService = Depends(get_job_card_service),
    actor: Actor = Depends(get_current_actor),
):
    job_cards, total = service.list_job_cards(garage_id, actor, status=status_filter, skip=skip, limit=limit)
    return {"items": [service.job_card_to_response(j) for j in job_cards], "total": total}


@router.put(
    "/engineers/{engineer_id}/assign",
    response_model=List[JobCardResponse],
    summary="Assign an engineer to several job cards",
)
def assign_job_cards_to_engineer(
    engineer_id: int,
    assignment: JobCardAssignment,
    service: JobCardService = Depends(get_job_card_service),
    actor: Actor = Depends(get_current_actor),
):
    job_cards = service.assign_job_cards_to_engineer(engineer_id, assignment.job_card_ids, actor)
    return [service.job_card_to_response(j) for j in job_cards]

# ============ DYNAMIC ROUTES ============

@router.get("/{job_card_id}", response_model=JobCardResponse, summary="Get job card by ID")
def get_job_card(
    job_card_id: int,
    service: JobCardService = Depends(get_job_card_service),
    actor: Actor = Depends(get_current_actor),
):
    return service.job_card_to_response(service.get_job_card(job_card_id, actor))


@router.put("/{job_card_id}", response_model=JobCardResponse, summary="Update job card details")
def update_job_card(
    job_card_id: int,
    job_card_update: JobCardUpdate,
    service: JobCardService = Depends(get_job_card_service),
    actor: Actor = Depends(get_current_actor),
):
    job_card = service.update_job_card(job_card_id, job_card_update, actor)
    return service.job_card_to_response(job_card)


@router.delete("/{job_card_id}", summary="Delete job card (admin)")
def delete_job_card(
    job_card_id: int,
    service: JobCardService = Depends(get_job_card_service),
    admin: Actor = Depends(get_current_admin),
):
    service.delete_job_card(job_card_id, admin)
    return {"message": "Job card deleted successfully"}


@router.put(
    "/{job_card_id}/assign-engineers",
    response_model=JobCardResponse,
    summary="Assign engineers",
    description="Replace the engineers of a job card. Every engineer must belong to the garage."
)
def assign_engineers(
    job_card_id: int,
    assignment: EngineerAssignment,
    service: JobCardService = Depends(get_job_card_service),
    actor: Actor = Depends(get_current_actor),
):
    job_card = service.assign_engineers(job_card_id, assignment.engineer_ids, actor)
    return service.job_card_to_response(job_card)


@router.put("/{job_card_id}/status", response_model=JobCardResponse, summary="Update job card status")
def update_status(
    job_card_id: int,
    status_update: JobStatusUpdate,
    service: JobCardService = Depends(get_job_card_service),
    actor: Actor = Depends(get_current_actor),
):
    job_card = service.update_status(job_card_id, status_update.status, actor)
    return service.job_card_to_response(job_card)


@router.put(
    "/{job_card_id}/work-progress",
    response_model=JobCardResponse,
    summary="Log work progress",
    description="Record parts, labour, hours, remarks and status. Only supplied fields are written."
)
def log_work_progress(
    job_card_id: int,
    progress: WorkProgressUpdate,
    service: JobCardService = Depends(get_job_card_service),
    actor: Actor = Depends(get_current_actor),
):
    job_card = service.log_work_progress(
        job_card_id,
        actor,
        parts_used=progress.parts_used,
        labour_service_cost=progress.labour_service_cost,
        labor_hours=progress.labor_hours,
        engineer_remarks=progress.engineer_remarks,
        status=progress.status,
    )
    return service.job_card_to_response(job_card)


@router.put("/{job_card_id}/quality-check", response_model=JobCardResponse, summary="Complete quality check")
def quality_check(
    job_card_id: int,
    request: Optional[QualityCheckRequest] = None,
    service: JobCardService = Depends(get_job_card_service),
    actor: Actor = Depends(get_current_actor),
):
    notes = request.notes if request else None
    job_card = service.quality_check(job_card_id, notes, actor)
    return service.job_card_to_response(job_card)


@router.put("/{job_card_id}/generate-bill", response_model=JobCardResponse, summary="Mark job card ready to bill")
def mark_for_billing(
    job_card_id: int,
    service: JobCardService = Depends(get_job_card_service),
    actor: Actor = Depends(get_current_actor),
):
    job_card = service.mark_for_billing(job_card_id, actor)
    return service.job_card_to_response(job_card)
