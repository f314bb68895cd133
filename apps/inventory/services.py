from sqlalchemy.orm import Session
from sqlalchemy import or_
from typing import List, Optional, Tuple
from fastapi import Depends
import logging

from apps.inventory.models import InventoryPart
from apps.inventory.schemas import InventoryPartCreate, InventoryPartUpdate, StockAdjustment
from apps.garages.models import Garage
from apps.auth.services import Actor, ensure_garage_access
from core.database import get_db
from core.exceptions import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_LOW_STOCK_THRESHOLD = 5


class InventoryService:
    def __init__(self, db: Session):
        self.db = db

    def get_part(self, part_id: int, actor: Actor) -> InventoryPart:
        part = self.db.query(InventoryPart).filter(InventoryPart.id == part_id).first()
        if not part:
            raise NotFoundError("Part not found")
        ensure_garage_access(actor, part.garage_id)
        return part

    def list_parts(
        self,
        garage_id: int,
        actor: Actor,
        search: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> Tuple[List[InventoryPart], int]:
        """Parts of a garage, optionally matching name, number or vehicle."""
        ensure_garage_access(actor, garage_id)
        query = self.db.query(InventoryPart).filter(InventoryPart.garage_id == garage_id)

        if search:
            query = query.filter(or_(
                InventoryPart.part_name.ilike(f"%{search}%"),
                InventoryPart.part_number.ilike(f"%{search}%"),
                InventoryPart.car_name.ilike(f"%{search}%"),
                InventoryPart.model.ilike(f"%{search}%"),
            ))

        total = query.count()
        parts = query.order_by(InventoryPart.part_name).offset(skip).limit(limit).all()
        return parts, total

    def add_part(self, part: InventoryPartCreate, actor: Actor) -> InventoryPart:
        ensure_garage_access(actor, part.garage_id)
        if not self.db.query(Garage).filter(Garage.id == part.garage_id).first():
            raise NotFoundError("Garage not found")

        db_part = InventoryPart(**part.model_dump())
        self.db.add(db_part)
        self.db.commit()
        self.db.refresh(db_part)

        logger.info(f"Added part {db_part.part_name} (ID: {db_part.id}) to garage {db_part.garage_id}")
        return db_part

    def update_part(self, part_id: int, part_update: InventoryPartUpdate, actor: Actor) -> InventoryPart:
        db_part = self.get_part(part_id, actor)

        for field, value in part_update.model_dump(exclude_unset=True).items():
            setattr(db_part, field, value)

        self.db.commit()
        self.db.refresh(db_part)
        logger.info(f"Updated part {db_part.part_name} (ID: {db_part.id})")
        return db_part

    def delete_part(self, part_id: int, actor: Actor) -> bool:
        db_part = self.get_part(part_id, actor)
        part_name = db_part.part_name
        self.db.delete(db_part)
        self.db.commit()
        logger.info(f"Deleted part {part_name} (ID: {part_id})")
        return True

    def adjust_stock(self, part_id: int, adjustment: StockAdjustment, actor: Actor) -> InventoryPart:
        db_part = self.get_part(part_id, actor)

        new_quantity = (db_part.quantity or 0) + adjustment.quantity_change
        if new_quantity < 0:
            raise ValidationError(
                f"Insufficient stock. Current: {db_part.quantity}, "
                f"Requested reduction: {abs(adjustment.quantity_change)}",
                field="quantity_change",
            )

        db_part.quantity = new_quantity
        self.db.commit()
        self.db.refresh(db_part)

        logger.info(
            f"Updated stock for {db_part.part_name}: "
            f"{adjustment.quantity_change} (Reason: {adjustment.reason})"
        )
        return db_part

    def low_stock(self, garage_id: int, actor: Actor, threshold: int = DEFAULT_LOW_STOCK_THRESHOLD) -> List[InventoryPart]:
        """Parts at or below ``threshold`` units."""
        ensure_garage_access(actor, garage_id)
        return self.db.query(InventoryPart).filter(
            InventoryPart.garage_id == garage_id,
            InventoryPart.quantity <= threshold,
        ).order_by(InventoryPart.quantity, InventoryPart.part_name).all()


# Dependency injection
def get_inventory_service(db: Session = Depends(get_db)) -> InventoryService:
    return InventoryService(db)
