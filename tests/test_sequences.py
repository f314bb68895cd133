import threading

import pytest

from apps.billing.models import Bill, BillType
from apps.job_cards.models import CreatorKind, JobCard
from apps.job_cards.services import JobCardService
from core.exceptions import ConflictError
from core.sequences import (
    SequenceAllocator, SequenceCounter, format_invoice_number, invoice_digits, pad_invoice_number,
)


def test_invoice_number_helpers():
    assert invoice_digits("INV-007") == 7
    assert invoice_digits("abc") == 0
    assert invoice_digits(None) == 0
    assert pad_invoice_number(7, BillType.GST) == "007"
    assert pad_invoice_number(7, "non-gst") == "07"
    assert pad_invoice_number(1234, BillType.GST) == "1234"
    assert format_invoice_number("01") == "INV-01"


def test_job_card_numbers_start_at_one(db, garage):
    allocator = SequenceAllocator(db)

    assert allocator.next_job_card_number(garage.id) == 1
    assert allocator.next_job_card_number(garage.id) == 2
    db.commit()

    counter = db.query(SequenceCounter).filter_by(garage_id=garage.id, name="job_card").one()
    assert counter.current_value == 2


def test_counters_are_per_garage(db, make_garage):
    first, second = make_garage(), make_garage()
    allocator = SequenceAllocator(db)

    assert allocator.next_job_card_number(first.id) == 1
    assert allocator.next_job_card_number(second.id) == 1
    assert allocator.next_invoice_number(first.id, BillType.GST) == "001"
    assert allocator.next_invoice_number(first.id, BillType.NON_GST) == "01"


def test_rolled_back_allocation_is_not_consumed(db, garage):
    SequenceAllocator(db).next_job_card_number(garage.id)
    db.rollback()

    assert SequenceAllocator(db).next_job_card_number(garage.id) == 1


def test_counter_is_seeded_from_existing_job_cards(db, garage, job_card_data):
    existing = JobCard(
        **job_card_data(garage.id).model_dump(),
        job_card_number=41,
        job_id="JC-1",
        created_by_kind=CreatorKind.GARAGE,
        created_by_id=garage.id,
    )
    db.add(existing)
    db.commit()

    assert SequenceAllocator(db).next_job_card_number(garage.id) == 42


def test_invoice_counter_is_seeded_from_latest_bill(db, garage):
    db.add(Bill(garage_id=garage.id, invoice_no="INV-007", invoice_seq=7, bill_type=BillType.GST))
    db.commit()
    allocator = SequenceAllocator(db)

    assert allocator.last_invoice_number(garage.id, BillType.GST) == "INV-007"
    assert allocator.next_invoice_number(garage.id, BillType.GST) == "008"


def test_last_invoice_number_defaults(db, garage):
    allocator = SequenceAllocator(db)

    assert allocator.last_invoice_number(garage.id, BillType.GST) == "INV-001"
    assert allocator.last_invoice_number(garage.id, BillType.NON_GST) == "INV-01"


def test_numbers_are_not_reused_after_delete(db, garage, garage_actor, job_card_data):
    service = JobCardService(db)
    cards = [service.create_job_card(job_card_data(garage.id), garage_actor) for _ in range(3)]

    service.delete_job_card(cards[-1].id, garage_actor)
    replacement = service.create_job_card(job_card_data(garage.id), garage_actor)

    assert [c.job_card_number for c in cards[:2]] == [1, 2]
    assert replacement.job_card_number == 4


def test_concurrent_job_cards_get_distinct_numbers(db, session_factory, garage, garage_actor, job_card_data):
    garage_id = garage.id
    # Release the fixture session's write lock before the workers start
    db.close()
    workers = 8
    numbers, errors = [], []
    lock = threading.Lock()
    start = threading.Barrier(workers)

    def create():
        session = session_factory()
        try:
            start.wait()
            card = JobCardService(session).create_job_card(job_card_data(garage_id), garage_actor)
            with lock:
                numbers.append(card.job_card_number)
        except Exception as exc:  # collected and asserted below
            with lock:
                errors.append(exc)
        finally:
            session.close()

    threads = [threading.Thread(target=create) for _ in range(workers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    assert sorted(numbers) == list(range(1, workers + 1))


def test_collisions_surface_as_conflict_after_retries(db, garage, garage_actor, job_card_data, monkeypatch):
    # A counter that keeps handing out a number already taken
    service = JobCardService(db)
    service.create_job_card(job_card_data(garage.id), garage_actor)
    monkeypatch.setattr(SequenceAllocator, "next_job_card_number", lambda self, garage_id: 1)

    with pytest.raises(ConflictError, match="Job card number already exists"):
        service.create_job_card(job_card_data(garage.id), garage_actor)

    assert db.query(JobCard).count() == 1
