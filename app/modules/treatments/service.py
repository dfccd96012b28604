import uuid
import logging
from decimal import Decimal
from typing import Iterable
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.errors import NotFound, ValidationFailed
from app.core.paging import PageParams
from app.modules.appointments.service import AppointmentService
from app.modules.patients.repository import PatientRepository
from app.modules.procedures.repository import ProcedureRepository
from app.modules.treatments.models import Treatment, TreatmentProcedure
from app.modules.treatments.repository import TreatmentRepository
from app.modules.treatments.schemas import LineItemIn, PaymentUpdate, TreatmentCreate, TreatmentUpdate

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")

def line_total(unit_price: Decimal, quantity: int) -> Decimal:
    return (Decimal(unit_price) * quantity).quantize(CENTS)

def treatment_total(items: Iterable[TreatmentProcedure]) -> Decimal:
    return sum((i.subtotal for i in items), Decimal("0")).quantize(CENTS)

class TreatmentService:
    def __init__(self, s: AsyncSession):
        self.s = s
        self.repo = TreatmentRepository(s)
        self.patients = PatientRepository(s)
        self.procedures = ProcedureRepository(s)
        self.appointments = AppointmentService(s)

    async def _line_items(self, items: list[LineItemIn], *, require_active: bool) -> list[TreatmentProcedure]:
        catalog = await self.procedures.get_many({i.procedure_id for i in items})
        out = []
        for i in items:
            proc = catalog.get(i.procedure_id)
            if not proc:
                raise NotFound(f"Procedure {i.procedure_id} not found")
            if require_active and not proc.is_active:
                raise ValidationFailed(f"Procedure '{proc.name}' is not active")
            # the submitted price is recorded as billed, not the catalog price
            out.append(TreatmentProcedure(
                procedure_id=proc.id,
                procedure=proc,
                quantity=i.quantity,
                unit_price=i.unit_price,
                subtotal=line_total(i.unit_price, i.quantity),
                tooth_number=i.tooth_number,
                notes=i.notes,
            ))
        return out

    async def _appointment_for(self, appointment_id: uuid.UUID, patient_id: uuid.UUID):
        appt = await self.appointments.get(appointment_id)
        if appt.patient_id != patient_id:
            raise ValidationFailed("Appointment belongs to a different patient")
        return appt

    async def create(self, payload: TreatmentCreate) -> Treatment:
        patient = await self.patients.get(payload.patient_id)
        if not patient:
            raise NotFound("Patient not found")
        appt = None
        if payload.appointment_id:
            appt = await self._appointment_for(payload.appointment_id, patient.id)

        items = await self._line_items(payload.procedures, require_active=False)
        obj = Treatment(
            patient_id=patient.id,
            patient=patient,
            appointment_id=payload.appointment_id,
            treatment_date=payload.treatment_date,
            notes=payload.notes,
            payment_status="pending",
            amount_paid=Decimal("0"),
            items=items,
            total_amount=treatment_total(items),
        )
        await self.repo.add(obj)
        if appt is not None:
            self.appointments.mark_completed(appt)
        await self.s.commit()
        logger.info(f"Treatment {obj.id} recorded for patient {patient.patient_code}: {len(items)} procedure(s), total {obj.total_amount}")
        return obj

    async def get(self, treatment_id: uuid.UUID) -> Treatment:
        obj = await self.repo.get(treatment_id)
        if not obj:
            raise NotFound("Treatment not found")
        return obj

    async def list(self, page: PageParams, **filters):
        return await self.repo.list(limit=page.limit, offset=page.offset, **filters)

    async def update(self, treatment_id: uuid.UUID, payload: TreatmentUpdate) -> Treatment:
        obj = await self.get(treatment_id)
        data = payload.model_dump(exclude_unset=True, exclude={"procedures"})
        if data.get("appointment_id"):
            await self._appointment_for(data["appointment_id"], obj.patient_id)
        if "treatment_date" in data and data["treatment_date"] is None:
            data.pop("treatment_date")
        for k, v in data.items():
            setattr(obj, k, v)

        if payload.procedures is not None:
            # replaced wholesale; orphaned rows are deleted on flush
            obj.items = await self._line_items(payload.procedures, require_active=True)
            obj.total_amount = treatment_total(obj.items)
        await self.s.flush()
        await self.s.commit()
        return obj

    async def update_payment(self, treatment_id: uuid.UUID, payload: PaymentUpdate) -> Treatment:
        obj = await self.get(treatment_id)
        obj.payment_status = payload.payment_status
        obj.amount_paid = payload.amount_paid
        await self.s.commit()
        return obj

    async def delete(self, treatment_id: uuid.UUID) -> None:
        obj = await self.get(treatment_id)
        await self.repo.delete(obj)
        await self.s.commit()
        logger.info(f"Treatment {treatment_id} deleted")
