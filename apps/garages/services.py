from sqlalchemy.orm import Session
from sqlalchemy import or_
from typing import Callable, List, Optional, Tuple
from fastapi import Depends, HTTPException, status
from datetime import datetime, timedelta
import calendar
import logging
import math
import secrets

from apps.garages.models import Garage, Engineer
from apps.garages.schemas import GarageCreate, GarageUpdate, SubscriptionRenewal, EngineerCreate
from apps.plans.services import PlanService
from apps.auth.services import (
    GARAGE_PRINCIPAL, create_access_token, get_password_hash, verify_password,
)
from core.config import settings
from core.database import get_db
from core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from core.mailer import MailResult, send_email
from core.payments import verify_payment_signature

logger = logging.getLogger(__name__)


def add_months(moment: datetime, months: int) -> datetime:
    """Same day ``months`` later, clamped to the last day of a shorter month."""
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def garage_token(garage: Garage) -> str:
    return create_access_token(data={"sub": str(garage.id), "kind": GARAGE_PRINCIPAL})


class GarageService:
    def __init__(self, db: Session, mailer: Callable[..., MailResult] = send_email):
        self.db = db
        self.mailer = mailer

    def get_garage(self, garage_id: int) -> Garage:
        garage = self.db.query(Garage).filter(Garage.id == garage_id).first()
        if not garage:
            raise NotFoundError("Garage not found")
        return garage

    def list_garages(self, approved: Optional[bool] = None) -> List[Garage]:
        query = self.db.query(Garage)
        if approved is not None:
            query = query.filter(Garage.approved == approved)
        return query.order_by(Garage.created_at.desc()).all()

    def register_garage(self, data: GarageCreate) -> Tuple[Garage, str]:
        """Create a garage with an active subscription, pending email verification and approval."""
        if data.duration_in_months <= 0:
            raise ValidationError("Invalid subscription duration", field="duration_in_months")

        if not data.is_free_plan and not verify_payment_signature(
            data.razorpay_order_id,
            data.razorpay_payment_id,
            data.razorpay_signature,
            settings.RAZORPAY_KEY_SECRET,
        ):
            raise ValidationError("Invalid payment signature", field="razorpay_signature")

        existing = self.db.query(Garage).filter(
            or_(Garage.email == data.email, Garage.name == data.name)
        ).first()
        if existing:
            raise ConflictError("Garage already exists")

        start = datetime.utcnow()
        if data.is_free_plan:
            payment = {"payment_id": None, "amount": 0, "method": "free", "status": "free"}
        else:
            payment = {
                "payment_id": data.razorpay_payment_id,
                "amount": data.amount,
                "method": "razorpay",
                "status": "paid",
            }

        garage = Garage(
            name=data.name,
            address=data.address,
            phone=data.phone,
            email=data.email,
            logo=data.logo,
            hashed_password=get_password_hash(data.password),
            gst_num=data.gst_num,
            pan_num=data.pan_num,
            bank_details=data.bank_details.model_dump(),
            subscription_type=f"{data.duration_in_months}_months",
            subscription_start=start,
            subscription_end=add_months(start, data.duration_in_months),
            is_subscribed=True,
            payment_details=payment,
            verification_code=f"{secrets.randbelow(10 ** 6):06d}",
        )
        self.db.add(garage)
        self.db.commit()
        self.db.refresh(garage)

        logger.info(f"Registered garage {garage.name} (ID: {garage.id})")
        self._send_verification_code(garage)
        return garage, garage_token(garage)

    def _send_verification_code(self, garage: Garage):
        result = self.mailer(
            garage.email,
            "Verify your garage account",
            f"Hello {garage.name},\n\nYour verification code is {garage.verification_code}.\n",
        )
        if not result.success:
            logger.warning(f"Verification email to {garage.email} failed: {result.error}")

    def verify_garage(self, email: str, code: str) -> Garage:
        garage = self.db.query(Garage).filter(Garage.email == email).first()
        if not garage:
            raise NotFoundError("Garage not found")
        if garage.is_verified:
            return garage
        if not garage.verification_code or not secrets.compare_digest(garage.verification_code, code):
            raise ValidationError("Invalid verification code", field="code")

        garage.is_verified = True
        garage.verification_code = None
        self.db.commit()
        self.db.refresh(garage)
        logger.info(f"Garage {garage.id} verified its email")
        return garage

    def login_garage(self, email: str, password: str, now: Optional[datetime] = None) -> Tuple[Garage, str]:
        garage = self.db.query(Garage).filter(Garage.email == email).first()
        if not garage:
            raise NotFoundError("Garage not found")
        if not garage.is_verified:
            raise ForbiddenError("Garage not verified")
        if not garage.approved:
            raise ForbiddenError("Garage not approved by admin")
        now = now or datetime.utcnow()
        if garage.subscription_end and now > garage.subscription_end:
            raise ForbiddenError(
                "Your subscription has expired. Please renew your plan.",
                {"subscription_expired": True},
            )
        if not verify_password(password, garage.hashed_password):
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid password")

        return garage, garage_token(garage)

    def update_garage(self, garage_id: int, garage_update: GarageUpdate) -> Garage:
        garage = self.get_garage(garage_id)
        update_data = garage_update.model_dump(exclude_unset=True)

        if update_data.get("name") and update_data["name"] != garage.name:
            taken = self.db.query(Garage).filter(Garage.name == update_data["name"]).first()
            if taken:
                raise ConflictError(f"Garage name '{update_data['name']}' is already taken")

        for field, value in update_data.items():
            setattr(garage, field, value)

        self.db.commit()
        self.db.refresh(garage)
        logger.info(f"Updated garage profile {garage.id}")
        return garage

    def set_approval(self, garage_id: int, approved: bool) -> Garage:
        garage = self.get_garage(garage_id)
        garage.approved = approved
        self.db.commit()
        self.db.refresh(garage)
        logger.info(f"Garage {garage.id} {'approved' if approved else 'rejected'}")
        return garage

    def renew_subscription(self, garage_id: int, renewal: SubscriptionRenewal, now: Optional[datetime] = None) -> Garage:
        """Start a new subscription period from a plan once the current one has ended."""
        garage = self.get_garage(garage_id)
        plan = PlanService(self.db).get_plan(renewal.plan_id)
        if not plan.is_active:
            raise ValidationError("Plan is no longer offered", field="plan_id")
        if not plan.amount or plan.amount <= 0:
            raise ValidationError("Invalid plan amount", field="plan_id")

        now = now or datetime.utcnow()
        if garage.is_subscribed and garage.subscription_end and garage.subscription_end > now:
            raise ConflictError(
                "Garage already has an active subscription. Please wait until it expires.",
                {"subscription_end": garage.subscription_end.isoformat()},
            )
        if renewal.payment_method == "razorpay" and not verify_payment_signature(
            renewal.order_id,
            renewal.payment_id,
            renewal.signature,
            settings.RAZORPAY_KEY_SECRET,
        ):
            raise ValidationError("Invalid payment signature", field="signature")

        garage.subscription_type = plan.subscription_type or f"{plan.duration_in_months}_months"
        garage.subscription_start = now
        garage.subscription_end = add_months(now, plan.duration_in_months)
        garage.is_subscribed = True
        garage.payment_details = {
            "payment_id": renewal.payment_id,
            "amount": plan.amount,
            "method": renewal.payment_method,
            "status": "paid",
            "order_id": renewal.order_id,
            "plan_id": plan.id,
        }
        self.db.commit()
        self.db.refresh(garage)
        logger.info(f"Renewed subscription of garage {garage.id} on plan {plan.name} until {garage.subscription_end}")
        return garage

    def subscription_status(self, garage_id: int, now: Optional[datetime] = None) -> dict:
        garage = self.get_garage(garage_id)
        now = now or datetime.utcnow()
        end = garage.subscription_end
        return {
            "garage_id": garage.id,
            "garage_name": garage.name,
            "is_subscribed": bool(garage.is_subscribed),
            "subscription_type": garage.subscription_type,
            "subscription_start": garage.subscription_start,
            "subscription_end": end,
            "is_expired": bool(end and end < now),
            # Whole days, rounded up; negative once expired
            "days_until_expiry": math.ceil((end - now).total_seconds() / 86400) if end else None,
        }

    def delete_garage(self, garage_id: int) -> bool:
        garage = self.get_garage(garage_id)
        self.db.delete(garage)
        self.db.commit()
        logger.info(f"Deleted garage {garage_id}")
        return True

    def cleanup_expired_registrations(self, now: Optional[datetime] = None) -> int:
        """Delete garages that never verified their email within the registration TTL."""
        cutoff = (now or datetime.utcnow()) - timedelta(hours=settings.REGISTRATION_TTL_HOURS)
        expired = self.db.query(Garage).filter(
            Garage.is_verified.is_(False),
            Garage.created_at < cutoff,
        ).all()
        for garage in expired:
            self.db.delete(garage)
        self.db.commit()
        if expired:
            logger.info(f"Removed {len(expired)} expired garage registration(s)")
        return len(expired)


class EngineerService:
    def __init__(self, db: Session):
        self.db = db

    def create_engineer(self, garage_id: int, engineer: EngineerCreate) -> Engineer:
        if not self.db.query(Garage).filter(Garage.id == garage_id).first():
            raise NotFoundError("Garage not found")
        db_engineer = Engineer(garage_id=garage_id, **engineer.model_dump())
        self.db.add(db_engineer)
        self.db.commit()
        self.db.refresh(db_engineer)
        logger.info(f"Created engineer {db_engineer.name} (ID: {db_engineer.id}) for garage {garage_id}")
        return db_engineer

    def list_engineers(self, garage_id: int) -> List[Engineer]:
        return self.db.query(Engineer).filter(Engineer.garage_id == garage_id).order_by(Engineer.id).all()

    def get_engineer(self, engineer_id: int) -> Engineer:
        engineer = self.db.query(Engineer).filter(Engineer.id == engineer_id).first()
        if not engineer:
            raise NotFoundError("Engineer not found")
        return engineer

    def delete_engineer(self, engineer_id: int) -> bool:
        engineer = self.get_engineer(engineer_id)
        self.db.delete(engineer)
        self.db.commit()
        return True

    def find_in_garage(self, engineer_ids: List[int], garage_id: int) -> List[Engineer]:
        return self.db.query(Engineer).filter(
            Engineer.id.in_(engineer_ids),
            Engineer.garage_id == garage_id,
        ).all()


# Dependency injection
def get_garage_service(db: Session = Depends(get_db)) -> GarageService:
    return GarageService(db)


def get_engineer_service(db: Session = Depends(get_db)) -> EngineerService:
    return EngineerService(db)
