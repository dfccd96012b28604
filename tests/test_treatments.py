import uuid
from datetime import date, time
from decimal import Decimal

import pytest

from app.core.errors import Conflict, NotFound, ValidationFailed
from app.core.paging import PageParams
from app.modules.procedures.schemas import ProcedureCreate, ProcedureUpdate
from app.modules.procedures.service import ProcedureService
from app.modules.treatments.schemas import LineItemIn, PaymentUpdate, TreatmentCreate, TreatmentUpdate
from app.modules.treatments.service import TreatmentService, line_total
from helpers import make_appointment, make_patient

DAY = date(2025, 3, 10)


async def catalog(s):
    procs = ProcedureService(s)
    cleaning = await procs.create(ProcedureCreate(category="Preventive", name="Cleaning", price=Decimal("80.00"), estimated_duration=45))
    filling = await procs.create(ProcedureCreate(category="Restorative", name="Composite Filling", price=Decimal("150.00")))
    return cleaning, filling


def test_line_total_rounds_to_cents():
    assert line_total(Decimal("33.335"), 3) == Decimal("100.00")
    assert line_total(Decimal("0"), 4) == Decimal("0.00")


def test_create_totals_lines_and_completes_visit(run_db):
    async def scenario(s):
        cleaning, filling = await catalog(s)
        p = await make_patient(s)
        appt = await make_appointment(s, p, DAY, time(10, 0))
        t = await TreatmentService(s).create(TreatmentCreate(
            patient_id=p.id,
            appointment_id=appt.id,
            treatment_date=DAY,
            procedures=[
                LineItemIn(procedure_id=cleaning.id, unit_price=Decimal("75.00")),
                LineItemIn(procedure_id=filling.id, quantity=2, unit_price=Decimal("150.00"), tooth_number="14"),
            ],
        ))
        assert t.total_amount == Decimal("375.00")
        assert t.payment_status == "pending"
        assert t.amount_paid == Decimal("0")
        assert [i.subtotal for i in t.items] == [Decimal("75.00"), Decimal("300.00")]
        assert t.items[1].procedure.name == "Composite Filling"
        assert appt.status == "completed"
    run_db(scenario)


def test_create_validates_references(run_db):
    async def scenario(s):
        cleaning, _ = await catalog(s)
        jane = await make_patient(s)
        john = await make_patient(s, first="John", last="Roe", email="john@example.com")
        johns_visit = await make_appointment(s, john, DAY, time(9, 0))
        svc = TreatmentService(s)
        line = [LineItemIn(procedure_id=cleaning.id, unit_price=Decimal("80"))]
        with pytest.raises(NotFound):
            await svc.create(TreatmentCreate(patient_id=uuid.uuid4(), treatment_date=DAY, procedures=line))
        with pytest.raises(ValidationFailed):
            await svc.create(TreatmentCreate(patient_id=jane.id, appointment_id=johns_visit.id, treatment_date=DAY, procedures=line))
        with pytest.raises(NotFound):
            await svc.create(TreatmentCreate(
                patient_id=jane.id, treatment_date=DAY,
                procedures=[LineItemIn(procedure_id=uuid.uuid4(), unit_price=Decimal("1"))],
            ))
    run_db(scenario)


def test_update_replaces_lines_and_recomputes_total(run_db):
    async def scenario(s):
        cleaning, filling = await catalog(s)
        p = await make_patient(s)
        svc = TreatmentService(s)
        t = await svc.create(TreatmentCreate(
            patient_id=p.id, treatment_date=DAY,
            procedures=[LineItemIn(procedure_id=cleaning.id, unit_price=Decimal("80"))],
        ))
        updated = await svc.update(t.id, TreatmentUpdate(
            notes="second visit",
            procedures=[LineItemIn(procedure_id=filling.id, quantity=3, unit_price=Decimal("120.50"))],
        ))
        assert updated.total_amount == Decimal("361.50")
        assert len(updated.items) == 1
        assert updated.items[0].procedure_id == filling.id
        assert updated.notes == "second visit"

        await ProcedureService(s).update(cleaning.id, ProcedureUpdate(is_active=False))
        with pytest.raises(ValidationFailed):
            await svc.update(t.id, TreatmentUpdate(procedures=[LineItemIn(procedure_id=cleaning.id, unit_price=Decimal("80"))]))
    run_db(scenario)


def test_payment_and_listing(run_db):
    async def scenario(s):
        cleaning, _ = await catalog(s)
        p = await make_patient(s)
        svc = TreatmentService(s)
        line = [LineItemIn(procedure_id=cleaning.id, unit_price=Decimal("80"))]
        t = await svc.create(TreatmentCreate(patient_id=p.id, treatment_date=DAY, procedures=line))
        await svc.create(TreatmentCreate(patient_id=p.id, treatment_date=date(2025, 3, 12), procedures=line))
        paid = await svc.update_payment(t.id, PaymentUpdate(payment_status="partial", amount_paid=Decimal("40")))
        assert paid.payment_status == "partial"
        items, total = await svc.list(PageParams(), payment_status="partial")
        assert total == 1 and items[0].id == t.id
        items, total = await svc.list(PageParams(), start_date=date(2025, 3, 11))
        assert total == 1 and items[0].treatment_date == date(2025, 3, 12)
        await svc.delete(t.id)
        with pytest.raises(NotFound):
            await svc.get(t.id)
    run_db(scenario)


def test_procedure_names_unique_and_in_use_protected(run_db):
    async def scenario(s):
        cleaning, filling = await catalog(s)
        procs = ProcedureService(s)
        with pytest.raises(Conflict):
            await procs.create(ProcedureCreate(name="cleaning"))
        with pytest.raises(Conflict):
            await procs.update(filling.id, ProcedureUpdate(name="Cleaning"))
        p = await make_patient(s)
        await TreatmentService(s).create(TreatmentCreate(
            patient_id=p.id, treatment_date=DAY,
            procedures=[LineItemIn(procedure_id=cleaning.id, unit_price=Decimal("80"))],
        ))
        with pytest.raises(Conflict):
            await procs.delete(cleaning.id)
        await procs.delete(filling.id)
        items, total = await procs.list(PageParams())
        assert total == 1 and items[0].name == "Cleaning"
    run_db(scenario)
