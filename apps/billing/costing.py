"""
Bill and job-card arithmetic.

Bill totals::

    total_parts_cost = sum(quantity * selling_price)
    total_labor_cost = sum(labor_cost)
    sub_total        = total_parts_cost + total_labor_cost
    gst              = round(sub_total * gst_percentage / 100, 2)   # gst bills only
    final_amount     = sub_total + gst - discount

The discount is a flat amount and the final amount is not clamped at zero.
Every line of a batch is validated before anything is returned, so a single
bad line rejects the whole batch.
"""
from dataclasses import dataclass, asdict
from typing import Iterable, List, Optional, Tuple, Type

from pydantic import BaseModel, ValidationError as PydanticValidationError

from apps.billing.models import BillType
from apps.billing.schemas import BillPartLine, BillServiceLine
from apps.job_cards.schemas import PartUsed, LabourService
from core.config import settings
from core.exceptions import ValidationError
from core.money import round_money


@dataclass
class BillTotals:
    total_parts_cost: float
    total_labor_cost: float
    sub_total: float
    gst: float
    gst_percentage: float
    discount: float
    final_amount: float
    hsn_code: str

    def as_dict(self) -> dict:
        return asdict(self)


def validate_lines(model: Type[BaseModel], lines: Optional[Iterable], field: str) -> List[BaseModel]:
    """Validate every line against ``model``; raise ValidationError naming the first bad field."""
    validated = []
    for index, line in enumerate(lines or []):
        if isinstance(line, model):
            validated.append(line)
            continue
        try:
            validated.append(model.model_validate(line))
        except PydanticValidationError as exc:
            error = exc.errors()[0]
            location = ".".join(str(part) for part in error["loc"])
            name = f"{field}[{index}].{location}" if location else f"{field}[{index}]"
            raise ValidationError(f"Invalid {name}: {error['msg']}", field=name) from exc
    return validated


def _first_hsn(parts: List[BillPartLine]) -> str:
    # Only the first part line's HSN is printed on the bill
    if not parts:
        return ""
    return parts[0].hsn_number or parts[0].hsn_code or ""


def calculate_bill_totals(
    parts,
    services,
    discount: float = 0.0,
    gst_percentage: Optional[float] = None,
    bill_type=BillType.GST,
) -> BillTotals:
    try:
        bill_type = BillType(bill_type)
    except ValueError:
        raise ValidationError(f"Unknown bill type '{bill_type}'", field="bill_type")

    part_lines = validate_lines(BillPartLine, parts, "parts")
    service_lines = validate_lines(BillServiceLine, services, "services")

    if gst_percentage is None:
        gst_percentage = settings.DEFAULT_GST_PERCENTAGE
    discount = float(discount or 0)

    total_parts_cost = sum(p.quantity * p.selling_price for p in part_lines)
    total_labor_cost = sum(s.labor_cost for s in service_lines)
    sub_total = total_parts_cost + total_labor_cost

    if bill_type == BillType.GST:
        gst = round_money(sub_total * gst_percentage / 100)
    else:
        gst = 0.0
        gst_percentage = 0.0

    final_amount = sub_total + gst - discount

    return BillTotals(
        total_parts_cost=round_money(total_parts_cost),
        total_labor_cost=round_money(total_labor_cost),
        sub_total=round_money(sub_total),
        gst=gst,
        gst_percentage=float(gst_percentage),
        discount=round_money(discount),
        final_amount=round_money(final_amount),
        hsn_code=_first_hsn(part_lines),
    )


def normalize_part_lines(lines, field: str = "parts_used") -> List[dict]:
    return [part.to_document() for part in validate_lines(PartUsed, lines, field)]


def normalize_labour_lines(lines, field: str = "labour_service_cost") -> List[dict]:
    return [labour.to_document() for labour in validate_lines(LabourService, lines, field)]


def labour_totals(lines: List[dict]) -> Tuple[float, float]:
    """(total labour cost, total labour tax) of normalised labour lines."""
    total = sum(line.get("labour_cost", 0) for line in lines)
    tax = sum(line.get("labour_tax", 0) for line in lines)
    return round_money(total), round_money(tax)
