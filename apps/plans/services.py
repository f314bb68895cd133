from sqlalchemy.orm import Session
from typing import List
from fastapi import Depends
import logging

from apps.plans.models import Plan
from apps.plans.schemas import PlanCreate, PlanUpdate
from core.database import get_db
from core.exceptions import ConflictError, NotFoundError

logger = logging.getLogger(__name__)


class PlanService:
    def __init__(self, db: Session):
        self.db = db

    def get_plan(self, plan_id: int) -> Plan:
        plan = self.db.query(Plan).filter(Plan.id == plan_id).first()
        if not plan:
            raise NotFoundError("Plan not found")
        return plan

    def list_plans(self, active_only: bool = False) -> List[Plan]:
        query = self.db.query(Plan)
        if active_only:
            query = query.filter(Plan.is_active.is_(True))
        return query.order_by(Plan.amount, Plan.id).all()

    def _ensure_name_free(self, name: str):
        if self.db.query(Plan).filter(Plan.name == name).first():
            raise ConflictError(f"Plan '{name}' already exists")

    def create_plan(self, plan: PlanCreate) -> Plan:
        self._ensure_name_free(plan.name)
        db_plan = Plan(**plan.model_dump())
        self.db.add(db_plan)
        self.db.commit()
        self.db.refresh(db_plan)
        logger.info(f"Created plan {db_plan.name} (ID: {db_plan.id}): {db_plan.amount} for {db_plan.duration_in_months} months")
        return db_plan

    def update_plan(self, plan_id: int, plan_update: PlanUpdate) -> Plan:
        db_plan = self.get_plan(plan_id)
        update_data = plan_update.model_dump(exclude_unset=True)
        if update_data.get("name") and update_data["name"] != db_plan.name:
            self._ensure_name_free(update_data["name"])

        for field, value in update_data.items():
            setattr(db_plan, field, value)

        self.db.commit()
        self.db.refresh(db_plan)
        logger.info(f"Updated plan {db_plan.name} (ID: {db_plan.id})")
        return db_plan

    def delete_plan(self, plan_id: int) -> bool:
        # Garages keep the plan id in their payment details; those stay as history
        db_plan = self.get_plan(plan_id)
        name = db_plan.name
        self.db.delete(db_plan)
        self.db.commit()
        logger.info(f"Deleted plan {name} (ID: {plan_id})")
        return True


# Dependency injection
def get_plan_service(db: Session = Depends(get_db)) -> PlanService:
    return PlanService(db)
