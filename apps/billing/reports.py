"""
Financial summary of a garage's bills.

All figures come from stored bills; job-card status only decides whether a
bill counts as a completed or a pending job.
"""
from collections import defaultdict
from datetime import date, datetime
from typing import Callable, Dict, Optional
import logging

from sqlalchemy.orm import Session, joinedload

from apps.billing.models import Bill, BillType
from apps.garages.models import Garage
from apps.job_cards.models import JobStatus
from core.exceptions import NotFoundError
from core.money import round_money
from core.sequences import format_invoice_number

logger = logging.getLogger(__name__)

RECENT_BILLS_LIMIT = 10


def _empty_month() -> Dict:
    return {"revenue": 0.0, "jobs": 0, "parts_cost": 0.0, "labor_cost": 0.0}


def _rounded_month(stats: Dict) -> Dict:
    return {
        "revenue": round_money(stats["revenue"]),
        "jobs": stats["jobs"],
        "parts_cost": round_money(stats["parts_cost"]),
        "labor_cost": round_money(stats["labor_cost"]),
    }


class FinancialReporter:
    def __init__(self, db: Session, clock: Callable[[], datetime] = datetime.utcnow):
        self.db = db
        self.clock = clock

    def report(self, garage_id: int, start_date: Optional[date] = None, end_date: Optional[date] = None) -> Dict:
        if not self.db.query(Garage).filter(Garage.id == garage_id).first():
            raise NotFoundError("Garage not found")

        query = self.db.query(Bill).options(joinedload(Bill.job_card)).filter(Bill.garage_id == garage_id)
        if start_date:
            query = query.filter(Bill.created_at >= datetime.combine(start_date, datetime.min.time()))
        if end_date:
            end = datetime.combine(end_date, datetime.max.time()).replace(microsecond=999000)
            query = query.filter(Bill.created_at <= end)
        bills = query.order_by(Bill.created_at.desc(), Bill.id.desc()).all()

        revenue = parts_cost = labor_cost = gst = discount = 0.0
        completed = pending = 0
        by_type = {BillType.GST.value: 0.0, BillType.NON_GST.value: 0.0}
        months = defaultdict(_empty_month)

        for bill in bills:
            amount = bill.final_amount or 0.0
            revenue += amount
            parts_cost += bill.total_parts_cost or 0.0
            labor_cost += bill.total_labor_cost or 0.0
            gst += bill.gst or 0.0
            discount += bill.discount or 0.0
            by_type[BillType(bill.bill_type).value] += amount

            if bill.job_card is not None and bill.job_card.status == JobStatus.COMPLETED:
                completed += 1
            else:
                pending += 1

            month = months[bill.created_at.strftime("%Y-%m")]
            month["revenue"] += amount
            month["jobs"] += 1
            month["parts_cost"] += bill.total_parts_cost or 0.0
            month["labor_cost"] += bill.total_labor_cost or 0.0

        gross_profit = revenue - parts_cost - labor_cost
        now = self.clock()
        current_key = now.strftime("%Y-%m")

        logger.debug(f"Report for garage {garage_id}: {len(bills)} bill(s) between {start_date} and {end_date}")
        return {
            "garage_id": garage_id,
            "generated_at": now,
            "period": {
                "start_date": start_date.isoformat() if start_date else None,
                "end_date": end_date.isoformat() if end_date else None,
            },
            "summary": {
                "total_bills": len(bills),
                "total_revenue": round_money(revenue),
                "total_parts_cost": round_money(parts_cost),
                "total_labor_cost": round_money(labor_cost),
                "total_gst": round_money(gst),
                "total_discount": round_money(discount),
                "gross_profit": round_money(gross_profit),
                "net_profit": round_money(gross_profit - discount),
                "completed_jobs": completed,
                "pending_jobs": pending,
            },
            "current_month": _rounded_month(months.get(current_key, _empty_month())),
            "bill_type_breakdown": {kind: round_money(total) for kind, total in by_type.items()},
            "monthly_breakdown": [
                {"month": key, **_rounded_month(months[key])} for key in sorted(months)
            ],
            "recent_bills": [self._recent(bill) for bill in bills[:RECENT_BILLS_LIMIT]],
        }

    @staticmethod
    def _recent(bill: Bill) -> Dict:
        job_card = bill.job_card
        return {
            "invoice_no": format_invoice_number(bill.invoice_no),
            "job_id": bill.job_id,
            "customer_name": job_card.customer_name if job_card and job_card.customer_name else "N/A",
            "car_number": job_card.car_number if job_card and job_card.car_number else "N/A",
            "amount": round_money(bill.final_amount),
            "created_at": bill.created_at,
            "bill_type": bill.bill_type,
        }
