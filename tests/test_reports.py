from datetime import date, datetime

import pytest

from apps.billing.models import Bill, BillType
from apps.billing.reports import FinancialReporter
from apps.job_cards.models import CreatorKind, JobCard, JobStatus
from core.exceptions import NotFoundError


def fixed_clock():
    return datetime(2026, 3, 15, 10, 0, 0)


@pytest.fixture
def reporter(db):
    return FinancialReporter(db, clock=fixed_clock)


@pytest.fixture
def add_bill(db, garage):
    seq = {BillType.GST: 0, BillType.NON_GST: 0}

    def _add(created_at, final_amount, parts=0.0, labor=0.0, gst=0.0, discount=0.0,
             bill_type=BillType.GST, job_card=None):
        seq[bill_type] += 1
        bill = Bill(
            garage_id=garage.id,
            job_card_id=job_card.id if job_card else None,
            job_id=job_card.job_id if job_card else None,
            invoice_no=str(seq[bill_type]).zfill(3 if bill_type == BillType.GST else 2),
            invoice_seq=seq[bill_type],
            bill_type=bill_type,
            total_parts_cost=parts,
            total_labor_cost=labor,
            sub_total=parts + labor,
            gst=gst,
            discount=discount,
            final_amount=final_amount,
            created_at=created_at,
        )
        db.add(bill)
        db.commit()
        return bill

    return _add


@pytest.fixture
def make_job_card(db, garage, job_card_data):
    numbers = iter(range(1, 100))

    def _make(status=JobStatus.IN_PROGRESS, **fields):
        card = JobCard(
            **job_card_data(garage.id, **fields).model_dump(),
            job_card_number=next(numbers),
            job_id=f"JC-{next(numbers)}",
            status=status,
            created_by_kind=CreatorKind.GARAGE,
            created_by_id=garage.id,
        )
        db.add(card)
        db.commit()
        return card

    return _make


def test_empty_report(reporter, garage):
    report = reporter.report(garage.id, date(2026, 1, 1), date(2026, 1, 31))

    assert report["summary"]["total_bills"] == 0
    assert report["summary"]["total_revenue"] == 0.0
    assert report["summary"]["net_profit"] == 0.0
    assert report["monthly_breakdown"] == []
    assert report["recent_bills"] == []
    assert report["current_month"] == {"revenue": 0.0, "jobs": 0, "parts_cost": 0.0, "labor_cost": 0.0}
    assert report["bill_type_breakdown"] == {"gst": 0.0, "non-gst": 0.0}
    assert report["period"] == {"start_date": "2026-01-01", "end_date": "2026-01-31"}


def test_summary_and_breakdowns(reporter, garage, add_bill, make_job_card):
    done = make_job_card(status=JobStatus.COMPLETED, customer_name="Asha Rao", car_number="KA01AB1234")
    add_bill(datetime(2026, 1, 10), 1180.0, parts=600, labor=400, gst=180, discount=0, job_card=done)
    add_bill(datetime(2026, 3, 2), 500.0, parts=300, labor=250, discount=50, bill_type=BillType.NON_GST)
    add_bill(datetime(2026, 3, 5), 250.25, parts=100, labor=100, gst=50.25)

    report = reporter.report(garage.id)
    summary = report["summary"]

    assert summary["total_bills"] == 3
    assert summary["total_revenue"] == 1930.25
    assert summary["total_parts_cost"] == 1000.0
    assert summary["total_labor_cost"] == 750.0
    assert summary["total_discount"] == 50.0
    assert summary["gross_profit"] == 180.25
    assert summary["net_profit"] == 130.25
    assert summary["completed_jobs"] == 1
    assert summary["pending_jobs"] == 2

    assert report["bill_type_breakdown"] == {"gst": 1430.25, "non-gst": 500.0}
    assert [m["month"] for m in report["monthly_breakdown"]] == ["2026-01", "2026-03"]
    assert report["current_month"]["jobs"] == 2
    assert report["current_month"]["revenue"] == 750.25
    assert report["generated_at"] == fixed_clock()


def test_recent_bills_newest_first_with_fallbacks(reporter, garage, add_bill, make_job_card):
    card = make_job_card(customer_name="Asha Rao", car_number="KA01AB1234")
    add_bill(datetime(2026, 2, 1), 100.0, job_card=card)
    add_bill(datetime(2026, 2, 2), 200.0, bill_type=BillType.NON_GST)

    recent = reporter.report(garage.id)["recent_bills"]

    assert [r["invoice_no"] for r in recent] == ["INV-01", "INV-001"]
    assert recent[0]["customer_name"] == "N/A"
    assert recent[0]["car_number"] == "N/A"
    assert recent[1]["customer_name"] == "Asha Rao"
    assert recent[1]["job_id"] == card.job_id


def test_recent_bills_are_capped(reporter, garage, add_bill):
    for day in range(1, 13):
        add_bill(datetime(2026, 2, day), 10.0)

    report = reporter.report(garage.id)

    assert len(report["recent_bills"]) == 10
    assert report["summary"]["total_bills"] == 12


def test_end_date_covers_the_whole_day(reporter, garage, add_bill):
    add_bill(datetime(2026, 1, 31, 23, 59, 59, 500000), 100.0)
    add_bill(datetime(2026, 2, 1, 0, 0, 0), 200.0)
    add_bill(datetime(2025, 12, 31, 23, 59, 59), 400.0)

    report = reporter.report(garage.id, start_date=date(2026, 1, 1), end_date=date(2026, 1, 31))

    assert report["summary"]["total_bills"] == 1
    assert report["summary"]["total_revenue"] == 100.0


def test_report_for_missing_garage(reporter):
    with pytest.raises(NotFoundError):
        reporter.report(999)
