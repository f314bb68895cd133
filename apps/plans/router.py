from fastapi import APIRouter, Depends, status, Query
from typing import List

from apps.plans.schemas import PlanCreate, PlanUpdate, PlanResponse
from apps.plans.services import PlanService, get_plan_service
from apps.auth.services import Actor, get_current_super_admin

router = APIRouter()

# Plans are public so the registration page can list them


@router.post(
    "/",
    response_model=PlanResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a subscription plan (super admin)",
)
def create_plan(
    plan: PlanCreate,
    service: PlanService = Depends(get_plan_service),
    admin: Actor = Depends(get_current_super_admin),
):
    return service.create_plan(plan)


@router.get("/", response_model=List[PlanResponse], summary="List subscription plans")
def list_plans(
    active_only: bool = Query(False, description="Only plans open for purchase"),
    service: PlanService = Depends(get_plan_service),
):
    return service.list_plans(active_only=active_only)


@router.get("/{plan_id}", response_model=PlanResponse, summary="Get plan by ID")
def get_plan(plan_id: int, service: PlanService = Depends(get_plan_service)):
    return service.get_plan(plan_id)


@router.put("/{plan_id}", response_model=PlanResponse, summary="Update plan (super admin)")
def update_plan(
    plan_id: int,
    plan_update: PlanUpdate,
    service: PlanService = Depends(get_plan_service),
    admin: Actor = Depends(get_current_super_admin),
):
    return service.update_plan(plan_id, plan_update)


@router.delete("/{plan_id}", summary="Delete plan (super admin)")
def delete_plan(
    plan_id: int,
    service: PlanService = Depends(get_plan_service),
    admin: Actor = Depends(get_current_super_admin),
):
    service.delete_plan(plan_id)
    return {"message": "Plan deleted successfully"}
