from fastapi import APIRouter, Depends, status
from typing import List

from apps.garages.schemas import (
    GarageCreate, GarageUpdate, GarageLogin, GarageVerify, GarageResponse, GarageAuthResponse,
    SubscriptionRenewal, SubscriptionStatus, EngineerCreate, EngineerResponse, EngineerListResponse,
)
from apps.garages.services import (
    GarageService, EngineerService, get_garage_service, get_engineer_service,
)
from apps.auth.services import (
    Actor, ensure_garage_access, get_current_actor, get_current_admin, get_current_super_admin,
)
from core.exceptions import NotFoundError

router = APIRouter()

# ============ PUBLIC ROUTES ============

@router.post(
    "/",
    response_model=GarageAuthResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a garage",
    description="Register a garage and activate its subscription. Requires email verification and admin approval."
)
def register_garage(
    garage: GarageCreate,
    service: GarageService = Depends(get_garage_service),
):
    db_garage, token = service.register_garage(garage)
    return {
        "message": "Garage created and subscription activated. Waiting for admin approval.",
        "garage": GarageResponse.model_validate(db_garage),
        "token": token,
    }


@router.post("/verify", response_model=GarageResponse, summary="Verify garage email")
def verify_garage(payload: GarageVerify, service: GarageService = Depends(get_garage_service)):
    return service.verify_garage(payload.email, payload.code)


@router.post("/login", response_model=GarageAuthResponse, summary="Garage login")
def login_garage(payload: GarageLogin, service: GarageService = Depends(get_garage_service)):
    garage, token = service.login_garage(payload.email, payload.password)
    return {"message": "Login successful", "garage": GarageResponse.model_validate(garage), "token": token}

# ============ STATIC ROUTES FIRST (before /{garage_id}) ============

@router.get("/", response_model=List[GarageResponse], summary="List all garages (super admin)")
def list_garages(
    service: GarageService = Depends(get_garage_service),
    admin: Actor = Depends(get_current_super_admin),
):
    return service.list_garages()


@router.get("/pending", response_model=List[GarageResponse], summary="Garages waiting for approval (super admin)")
def list_pending_garages(
    service: GarageService = Depends(get_garage_service),
    admin: Actor = Depends(get_current_super_admin),
):
    return service.list_garages(approved=False)


@router.get("/me", response_model=GarageResponse, summary="Garage of the current principal")
def get_my_garage(
    service: GarageService = Depends(get_garage_service),
    actor: Actor = Depends(get_current_actor),
):
    if actor.garage_id is None:
        raise NotFoundError("No garage is linked to this account")
    return service.get_garage(actor.garage_id)

# ============ DYNAMIC ROUTES ============

@router.get("/{garage_id}", response_model=GarageResponse, summary="Get garage by ID")
def get_garage(
    garage_id: int,
    service: GarageService = Depends(get_garage_service),
    actor: Actor = Depends(get_current_actor),
):
    ensure_garage_access(actor, garage_id)
    return service.get_garage(garage_id)


@router.put("/{garage_id}", response_model=GarageResponse, summary="Update garage profile")
def update_garage(
    garage_id: int,
    garage_update: GarageUpdate,
    service: GarageService = Depends(get_garage_service),
    admin: Actor = Depends(get_current_admin),
):
    ensure_garage_access(admin, garage_id)
    return service.update_garage(garage_id, garage_update)


@router.put("/{garage_id}/approve", response_model=GarageResponse, summary="Approve garage (super admin)")
def approve_garage(
    garage_id: int,
    service: GarageService = Depends(get_garage_service),
    admin: Actor = Depends(get_current_super_admin),
):
    return service.set_approval(garage_id, True)


@router.put("/{garage_id}/reject", response_model=GarageResponse, summary="Reject garage (super admin)")
def reject_garage(
    garage_id: int,
    service: GarageService = Depends(get_garage_service),
    admin: Actor = Depends(get_current_super_admin),
):
    return service.set_approval(garage_id, False)


@router.post("/{garage_id}/renew", response_model=GarageResponse, summary="Renew subscription")
def renew_subscription(
    garage_id: int,
    renewal: SubscriptionRenewal,
    service: GarageService = Depends(get_garage_service),
    admin: Actor = Depends(get_current_admin),
):
    ensure_garage_access(admin, garage_id)
    return service.renew_subscription(garage_id, renewal)


@router.get("/{garage_id}/subscription", response_model=SubscriptionStatus, summary="Subscription status")
def get_subscription_status(
    garage_id: int,
    service: GarageService = Depends(get_garage_service),
    actor: Actor = Depends(get_current_actor),
):
    ensure_garage_access(actor, garage_id)
    return service.subscription_status(garage_id)


@router.delete("/{garage_id}", summary="Delete garage (super admin)")
def delete_garage(
    garage_id: int,
    service: GarageService = Depends(get_garage_service),
    admin: Actor = Depends(get_current_super_admin),
):
    service.delete_garage(garage_id)
    return {"message": "Garage deleted successfully"}

# ============ ENGINEERS ============

@router.post(
    "/{garage_id}/engineers",
    response_model=EngineerResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add an engineer to a garage",
)
def create_engineer(
    garage_id: int,
    engineer: EngineerCreate,
    service: EngineerService = Depends(get_engineer_service),
    admin: Actor = Depends(get_current_admin),
):
    ensure_garage_access(admin, garage_id)
    return service.create_engineer(garage_id, engineer)


@router.get("/{garage_id}/engineers", response_model=EngineerListResponse, summary="List engineers of a garage")
def list_engineers(
    garage_id: int,
    service: EngineerService = Depends(get_engineer_service),
    actor: Actor = Depends(get_current_actor),
):
    ensure_garage_access(actor, garage_id)
    engineers = service.list_engineers(garage_id)
    return {"items": [EngineerResponse.model_validate(e) for e in engineers], "total": len(engineers)}


@router.delete("/{garage_id}/engineers/{engineer_id}", summary="Remove an engineer")
def delete_engineer(
    garage_id: int,
    engineer_id: int,
    service: EngineerService = Depends(get_engineer_service),
    admin: Actor = Depends(get_current_admin),
):
    ensure_garage_access(admin, garage_id)
    engineer = service.get_engineer(engineer_id)
    if engineer.garage_id != garage_id:
        raise NotFoundError("Engineer not found")
    service.delete_engineer(engineer_id)
    return {"message": "Engineer deleted successfully"}
