from fastapi import APIRouter, Depends, status, Query
from typing import List, Optional

from apps.inventory.schemas import (
    InventoryPartCreate, InventoryPartUpdate, InventoryPartResponse, InventoryListResponse, StockAdjustment,
)
from apps.inventory.services import InventoryService, get_inventory_service, DEFAULT_LOW_STOCK_THRESHOLD
from apps.auth.services import Actor, get_current_actor, get_current_admin

router = APIRouter()

# ============ STATIC ROUTES FIRST (before /{part_id}) ============

@router.post(
    "/",
    response_model=InventoryPartResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a part to inventory",
)
def add_part(
    part: InventoryPartCreate,
    service: InventoryService = Depends(get_inventory_service),
    admin: Actor = Depends(get_current_admin),
):
    return service.add_part(part, admin)


@router.get(
    "/garage/{garage_id}",
    response_model=InventoryListResponse,
    summary="List parts of a garage",
    description="Search matches part name, part number, car name and model"
)
def list_parts(
    garage_id: int,
    skip: int = Query(0, ge=0, description="Number of items to skip"),
    limit: int = Query(100, ge=1, le=1000, description="Number of items to return"),
    search: Optional[str] = Query(None, description="Search term"),
    service: InventoryService = Depends(get_inventory_service),
    actor: Actor = Depends(get_current_actor),
):
    parts, total = service.list_parts(garage_id, actor, search=search, skip=skip, limit=limit)
    return {"items": [InventoryPartResponse.model_validate(p) for p in parts], "total": total}


@router.get(
    "/garage/{garage_id}/low-stock",
    response_model=List[InventoryPartResponse],
    summary="Parts running low",
)
def low_stock(
    garage_id: int,
    threshold: int = Query(DEFAULT_LOW_STOCK_THRESHOLD, ge=0),
    service: InventoryService = Depends(get_inventory_service),
    actor: Actor = Depends(get_current_actor),
):
    return service.low_stock(garage_id, actor, threshold)

# ============ DYNAMIC ROUTES ============

@router.get("/{part_id}", response_model=InventoryPartResponse, summary="Get part by ID")
def get_part(
    part_id: int,
    service: InventoryService = Depends(get_inventory_service),
    actor: Actor = Depends(get_current_actor),
):
    return service.get_part(part_id, actor)


@router.put("/{part_id}", response_model=InventoryPartResponse, summary="Update part")
def update_part(
    part_id: int,
    part_update: InventoryPartUpdate,
    service: InventoryService = Depends(get_inventory_service),
    admin: Actor = Depends(get_current_admin),
):
    return service.update_part(part_id, part_update, admin)


@router.patch(
    "/{part_id}/stock",
    response_model=InventoryPartResponse,
    summary="Adjust stock",
    description="Add or remove stock. The quantity can never go below zero."
)
def adjust_stock(
    part_id: int,
    adjustment: StockAdjustment,
    service: InventoryService = Depends(get_inventory_service),
    actor: Actor = Depends(get_current_actor),
):
    return service.adjust_stock(part_id, adjustment, actor)


@router.delete("/{part_id}", summary="Delete part")
def delete_part(
    part_id: int,
    service: InventoryService = Depends(get_inventory_service),
    admin: Actor = Depends(get_current_admin),
):
    service.delete_part(part_id, admin)
    return {"message": "Part deleted successfully"}
