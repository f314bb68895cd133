import pytest
from pydantic import ValidationError as PydanticValidationError

from apps.auth.services import SUPER_ADMIN
from apps.billing.models import Bill
from apps.billing.schemas import BillGenerateRequest
from apps.billing.services import BillingService
from apps.job_cards.models import CreatorKind, JobCard, JobStatus
from apps.job_cards.schemas import JobCardUpdate
from apps.job_cards.services import JobCardService
from core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError


@pytest.fixture
def service(db):
    return JobCardService(db)


@pytest.fixture
def job_card(service, garage, garage_actor, job_card_data):
    return service.create_job_card(job_card_data(garage.id), garage_actor)


def test_create_job_card_defaults(job_card, garage):
    assert job_card.job_card_number == 1
    assert job_card.job_id.startswith("JC-")
    assert job_card.status == JobStatus.IN_PROGRESS
    assert job_card.generate_bill is False
    assert job_card.engineer_ids == []
    assert job_card.created_by_kind == CreatorKind.GARAGE
    assert job_card.created_by_id == garage.id


def test_create_job_card_for_another_garage_is_forbidden(service, make_garage, garage_actor, job_card_data):
    other = make_garage()

    with pytest.raises(ForbiddenError):
        service.create_job_card(job_card_data(other.id), garage_actor)


def test_create_job_card_for_missing_garage(service, super_admin, job_card_data):
    with pytest.raises(NotFoundError):
        service.create_job_card(job_card_data(9999), super_admin)


def test_update_job_card_only_touches_supplied_fields(service, job_card, garage_actor):
    updated = service.update_job_card(job_card.id, JobCardUpdate(kilometer=43500, fuel_level="Half"), garage_actor)

    assert updated.kilometer == 43500
    assert updated.fuel_level == "Half"
    assert updated.customer_name == "Asha Rao"


def test_update_rejects_null_for_required_fields(service, job_card, garage_actor):
    for field in ("customer_name", "status", "kilometer"):
        with pytest.raises(PydanticValidationError) as excinfo:
            JobCardUpdate(**{field: None})
        assert excinfo.value.errors()[0]["loc"] == (field,)

    updated = service.update_job_card(job_card.id, JobCardUpdate(fuel_level=None), garage_actor)
    assert updated.fuel_level is None
    assert updated.customer_name == "Asha Rao"


def test_assign_engineers_requires_a_list(service, job_card, garage_actor):
    with pytest.raises(ValidationError):
        service.assign_engineers(job_card.id, [], garage_actor)


def test_assign_engineers_from_another_garage_is_forbidden(
    service, job_card, garage, garage_actor, make_garage, make_engineer
):
    own = make_engineer(garage)
    foreign = make_engineer(make_garage(), name="Outsider")

    with pytest.raises(ForbiddenError):
        service.assign_engineers(job_card.id, [own.id, foreign.id], garage_actor)


def test_assign_engineers_replaces_the_set(service, job_card, garage, garage_actor, make_engineer):
    first, second = make_engineer(garage, "Ravi"), make_engineer(garage, "Meena")

    service.assign_engineers(job_card.id, [first.id], garage_actor)
    updated = service.assign_engineers(job_card.id, [second.id, second.id], garage_actor)

    assert updated.engineer_ids == [second.id]


def test_work_progress_writes_normalised_lines(service, job_card, garage_actor):
    updated = service.log_work_progress(
        job_card.id,
        garage_actor,
        parts_used=[{"part_name": "Oil filter", "quantity": "2", "price_per_piece": "150"}],
        labour_service_cost=[
            {"labour_type": "Oil change", "labour_cost": 300, "labour_tax": 54},
            {"labour_type": "Wash", "labour_cost": "100"},
        ],
        labor_hours=1.5,
        status=JobStatus.COMPLETED,
    )

    assert updated.parts_used[0]["total_price"] == 300.0
    assert updated.labor_services_total == 400.0
    assert updated.labor_services_tax == 54.0
    assert updated.labor_hours == 1.5
    assert updated.status == JobStatus.COMPLETED
    assert updated.engineer_remarks is None


def test_one_bad_line_rejects_the_whole_update(service, job_card, garage_actor, db):
    with pytest.raises(ValidationError) as excinfo:
        service.log_work_progress(
            job_card.id,
            garage_actor,
            parts_used=[
                {"part_name": "Oil filter", "quantity": 1, "price_per_piece": 150},
                {"part_name": "Coolant", "price_per_piece": 400},
            ],
            engineer_remarks="should not be saved",
        )

    assert excinfo.value.field == "parts_used[1].quantity"
    db.expire_all()
    stored = db.get(JobCard, job_card.id)
    assert stored.parts_used == []
    assert stored.engineer_remarks is None


def test_quality_check_needs_an_engineer(service, job_card, garage_actor):
    with pytest.raises(ValidationError):
        service.quality_check(job_card.id, "Looks good", garage_actor)


def test_quality_check_happens_once(service, job_card, garage, garage_actor, make_engineer, db):
    engineer = make_engineer(garage)
    service.assign_engineers(job_card.id, [engineer.id], garage_actor)

    checked = service.quality_check(job_card.id, None, garage_actor)
    first_date = checked.qc_date

    assert checked.qc_done_by == [engineer.id]
    assert checked.qc_notes == "No remarks"
    assert checked.qc_bill_approved is True
    assert first_date is not None

    with pytest.raises(ConflictError):
        service.quality_check(job_card.id, "Second opinion", garage_actor)

    db.expire_all()
    stored = db.get(JobCard, job_card.id)
    assert stored.qc_notes == "No remarks"
    assert stored.qc_date == first_date


def test_mark_for_billing_is_idempotent(service, job_card, garage_actor, db):
    service.mark_for_billing(job_card.id, garage_actor)
    again = service.mark_for_billing(job_card.id, garage_actor)

    assert again.generate_bill is True
    assert db.query(Bill).count() == 0


def test_staff_only_see_their_own_job_cards(
    service, garage, garage_actor, make_user_actor, job_card_data
):
    author, colleague = make_user_actor(garage), make_user_actor(garage)
    own = service.create_job_card(job_card_data(garage.id, customer_name="Own"), author)
    service.create_job_card(job_card_data(garage.id, customer_name="Garage"), garage_actor)

    assert service.get_job_card(own.id, author).id == own.id
    with pytest.raises(ForbiddenError):
        service.get_job_card(own.id, colleague)

    items, total = service.list_job_cards(garage.id, author)
    assert total == 1 and items[0].customer_name == "Own"

    _, everything = service.list_job_cards(garage.id, garage_actor)
    assert everything == 2


def test_list_job_cards_filters_by_status(service, garage, garage_actor, job_card_data):
    first = service.create_job_card(job_card_data(garage.id), garage_actor)
    service.create_job_card(job_card_data(garage.id), garage_actor)
    service.update_status(first.id, JobStatus.CANCELLED, garage_actor)

    items, total = service.list_job_cards(garage.id, garage_actor, status=JobStatus.CANCELLED)

    assert total == 1
    assert items[0].id == first.id


def test_super_admin_reaches_every_garage(service, job_card, make_user_actor):
    root = make_user_actor(role=SUPER_ADMIN)

    assert service.get_job_card(job_card.id, root).id == job_card.id


def test_response_carries_latest_invoice_number(service, job_card, garage_actor, db):
    assert service.job_card_to_response(job_card)["invoice_no"] is None

    BillingService(db).generate_bill(
        job_card.id,
        BillGenerateRequest(services=[{"description": "Service", "labor_cost": 500}]),
        garage_actor,
    )
    response = service.job_card_to_response(job_card)

    assert response["invoice_no"] == "INV-001"
    assert response["quality_check"]["bill_approved"] is False


def test_delete_missing_job_card(service, garage_actor):
    with pytest.raises(NotFoundError):
        service.delete_job_card(12345, garage_actor)


def test_staff_only_change_their_own_job_cards(service, garage, make_user_actor, make_engineer, job_card_data):
    author, colleague = make_user_actor(garage), make_user_actor(garage)
    card = service.create_job_card(job_card_data(garage.id), author)
    service.assign_engineers(card.id, [make_engineer(garage).id], author)

    with pytest.raises(ForbiddenError):
        service.update_job_card(card.id, JobCardUpdate(kilometer=50000), colleague)
    with pytest.raises(ForbiddenError):
        service.log_work_progress(card.id, colleague, engineer_remarks="Done")
    with pytest.raises(ForbiddenError):
        service.quality_check(card.id, "Looks good", colleague)
    with pytest.raises(ForbiddenError):
        service.mark_for_billing(card.id, colleague)

    assert service.update_job_card(card.id, JobCardUpdate(kilometer=50000), author).kilometer == 50000
    assert service.quality_check(card.id, "Looks good", author).qc_notes == "Looks good"


def test_assign_job_cards_to_engineer_keeps_existing_engineers(
    service, garage, garage_actor, make_engineer, job_card_data
):
    ravi, meena = make_engineer(garage, "Ravi"), make_engineer(garage, "Meena")
    first = service.create_job_card(job_card_data(garage.id), garage_actor)
    second = service.create_job_card(job_card_data(garage.id), garage_actor)
    service.assign_engineers(first.id, [ravi.id], garage_actor)

    updated = service.assign_job_cards_to_engineer(meena.id, [first.id, second.id, first.id], garage_actor)
    again = service.assign_job_cards_to_engineer(meena.id, [second.id], garage_actor)

    assert [j.id for j in updated] == [first.id, second.id]
    assert updated[0].engineer_ids == [ravi.id, meena.id]
    assert again[0].engineer_ids == [meena.id]


def test_assign_job_cards_to_engineer_rules(
    service, garage, garage_actor, make_garage, make_engineer, make_user_actor, job_card_data
):
    other = make_garage()
    own, outsider = make_engineer(garage), make_engineer(other, "Outsider")
    card = service.create_job_card(job_card_data(garage.id), garage_actor)

    with pytest.raises(ValidationError) as excinfo:
        service.assign_job_cards_to_engineer(own.id, [], garage_actor)
    assert excinfo.value.field == "job_card_ids"
    with pytest.raises(NotFoundError):
        service.assign_job_cards_to_engineer(own.id + outsider.id, [card.id], garage_actor)
    with pytest.raises(ForbiddenError):
        service.assign_job_cards_to_engineer(outsider.id, [card.id], garage_actor)
    # Even a super admin cannot move an engineer onto another garage's job card
    with pytest.raises(ForbiddenError):
        service.assign_job_cards_to_engineer(outsider.id, [card.id], make_user_actor(role=SUPER_ADMIN))

    assert service.get_job_card(card.id, garage_actor).engineer_ids == []
