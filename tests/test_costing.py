import pytest

from apps.billing.costing import (
    calculate_bill_totals, labour_totals, normalize_labour_lines, normalize_part_lines,
)
from apps.billing.models import BillType
from core.exceptions import ValidationError
from core.money import round_money

PARTS = [{"part_name": "Brake pad", "quantity": 2, "selling_price": 500, "hsn_number": "8708"}]
SERVICES = [{"description": "Brake service", "labor_cost": 300}]


def test_gst_bill_totals():
    totals = calculate_bill_totals(PARTS, SERVICES, discount=50, gst_percentage=18, bill_type="gst")

    assert totals.total_parts_cost == 1000.0
    assert totals.total_labor_cost == 300.0
    assert totals.sub_total == 1300.0
    assert totals.gst == 234.0
    assert totals.gst_percentage == 18.0
    assert totals.final_amount == 1484.0
    assert totals.hsn_code == "8708"


def test_non_gst_bill_has_no_tax():
    totals = calculate_bill_totals(PARTS, SERVICES, discount=50, gst_percentage=18, bill_type=BillType.NON_GST)

    assert totals.gst == 0.0
    assert totals.gst_percentage == 0.0
    assert totals.final_amount == 1250.0


def test_default_gst_percentage_comes_from_settings(monkeypatch):
    from core.config import settings

    monkeypatch.setattr(settings, "DEFAULT_GST_PERCENTAGE", 10.0)
    totals = calculate_bill_totals(PARTS, SERVICES)

    assert totals.gst_percentage == 10.0
    assert totals.gst == 130.0


def test_discount_larger_than_total_is_not_clamped():
    totals = calculate_bill_totals(PARTS, SERVICES, discount=2000, gst_percentage=18)

    assert totals.final_amount == -466.0


def test_numeric_strings_are_coerced():
    totals = calculate_bill_totals(
        [{"quantity": "3", "selling_price": "10.10"}],
        [{"labor_cost": "0.7"}],
        gst_percentage=0,
    )

    assert totals.total_parts_cost == 30.3
    assert totals.final_amount == 31.0


def test_hsn_comes_from_first_part_only():
    parts = [
        {"quantity": 1, "selling_price": 10, "hsn_code": "4011"},
        {"quantity": 1, "selling_price": 10, "hsn_number": "8708"},
    ]

    assert calculate_bill_totals(parts, []).hsn_code == "4011"
    assert calculate_bill_totals([], SERVICES).hsn_code == ""


def test_missing_selling_price_rejects_the_batch():
    parts = PARTS + [{"part_name": "Oil", "quantity": 1}]

    with pytest.raises(ValidationError) as excinfo:
        calculate_bill_totals(parts, SERVICES)

    assert excinfo.value.field == "parts[1].selling_price"
    assert excinfo.value.status_code == 422


def test_missing_labor_cost_is_named():
    with pytest.raises(ValidationError) as excinfo:
        calculate_bill_totals(PARTS, [{"description": "Wash"}])

    assert excinfo.value.field == "services[0].labor_cost"


def test_unknown_bill_type():
    with pytest.raises(ValidationError) as excinfo:
        calculate_bill_totals(PARTS, SERVICES, bill_type="proforma")

    assert excinfo.value.field == "bill_type"


def test_round_money_is_half_up():
    assert round_money(2.675) == 2.68
    assert round_money(0.125) == 0.13
    assert round_money(None) == 0.0


def test_part_lines_are_fully_defaulted():
    [line] = normalize_part_lines([
        {"part_name": "Oil filter", "quantity": "2", "price_per_piece": "150.5", "tax_percentage": 18, "hsn_code": 8421},
    ])

    assert line["total_price"] == 301.0
    assert line["tax_amount"] == 54.18
    assert line["hsn_number"] == "8421"
    assert line["part_number"] == ""
    assert line["igst"] == 0.0
    assert "hsn_code" not in line


def test_explicit_part_totals_are_kept():
    [line] = normalize_part_lines([
        {"part_name": "Bulb", "quantity": 1, "price_per_piece": 100, "total_price": 90, "tax_amount": 5},
    ])

    assert line["total_price"] == 90.0
    assert line["tax_amount"] == 5.0


def test_bad_part_line_names_its_position():
    with pytest.raises(ValidationError) as excinfo:
        normalize_part_lines([
            {"part_name": "Oil", "quantity": 1, "price_per_piece": 10},
            {"part_name": "Wiper", "price_per_piece": 10},
        ])

    assert excinfo.value.field == "parts_used[1].quantity"


def test_labour_lines_and_totals():
    lines = normalize_labour_lines([
        {"labour_type": "Alignment", "labour_cost": "400", "labour_tax": 72},
        {
            "labour_type": "Denting",
            "labour_cost": 1200.25,
            "parts": [{"part_name": "Putty", "quantity": 1, "price_per_piece": 80}],
        },
    ])

    assert lines[0]["labour_notes"] == ""
    assert lines[0]["parts"] == []
    assert lines[1]["labour_tax"] == 0.0
    assert lines[1]["parts"][0]["total_price"] == 80.0
    assert labour_totals(lines) == (1600.25, 72.0)
