from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query
import logging

from ..application.services.scheduling_service import SchedulingService
from ..domain.models import Doctor, ScheduleOverride, WorkingHours
from ..schemas.common.common import ErrorResponse, MessageResponse
from ..schemas.doctors.doctor import (
    AvailabilityResponse,
    AvailabilityUpdate,
    BlockedSlotUpdate,
    DoctorCreate,
    DoctorResponse,
    ResolvedScheduleResponse,
    TimeSlotResponse,
    WorkingHoursSchema,
)
from .dependencies import get_scheduling_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/doctors",
    tags=["Doctors"],
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)


def _hours(value: Optional[WorkingHoursSchema]) -> Optional[WorkingHours]:
    return WorkingHours(start=value.start, end=value.end) if value else None


def _doctor_from_payload(payload: DoctorCreate, doctor_id: Optional[str]) -> Doctor:
    return Doctor(
        id=doctor_id or "",
        name=payload.name,
        specialty=payload.specialty,
        available=payload.available,
        buffer_time=payload.buffer_time,
        max_appointments=payload.max_appointments,
        consultation_duration=payload.consultation_duration,
        working_hours=_hours(payload.working_hours),
        off_days=list(payload.off_days),
        working_days=payload.working_days,
        available_dates=payload.available_dates,
        unavailable_dates=list(payload.unavailable_dates),
        schedule_settings={
            day: ScheduleOverride(
                available=o.available,
                custom_hours=_hours(o.custom_hours),
                max_appointments=o.max_appointments,
            )
            for day, o in payload.schedule_settings.items()
        },
    )


@router.get("/", response_model=List[DoctorResponse])
def list_doctors(service: SchedulingService = Depends(get_scheduling_service)):
    return [DoctorResponse.model_validate(d) for d in service.list_doctors()]


@router.post("/", response_model=DoctorResponse, status_code=201)
def create_doctor(payload: DoctorCreate, service: SchedulingService = Depends(get_scheduling_service)):
    try:
        doctor = service.create_doctor(_doctor_from_payload(payload, payload.id))
        return DoctorResponse.model_validate(doctor)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error creating doctor: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to create doctor")


@router.get("/available", response_model=List[DoctorResponse])
def doctors_for_date(
    date: str = Query(..., description="YYYY-MM-DD"),
    service: SchedulingService = Depends(get_scheduling_service),
):
    """Doctors a patient can pick on ``date``."""
    return [DoctorResponse.model_validate(d) for d in service.doctors_for_date(date)]


@router.get("/{doctor_id}", response_model=DoctorResponse)
def get_doctor(doctor_id: str, service: SchedulingService = Depends(get_scheduling_service)):
    return DoctorResponse.model_validate(service.get_doctor(doctor_id))


@router.put("/{doctor_id}", response_model=DoctorResponse)
def update_doctor(doctor_id: str, payload: DoctorCreate, service: SchedulingService = Depends(get_scheduling_service)):
    return DoctorResponse.model_validate(service.update_doctor(_doctor_from_payload(payload, doctor_id)))


@router.get("/{doctor_id}/schedule", response_model=ResolvedScheduleResponse)
def resolve_schedule(
    doctor_id: str,
    date: str = Query(..., description="YYYY-MM-DD"),
    service: SchedulingService = Depends(get_scheduling_service),
):
    return ResolvedScheduleResponse.model_validate(service.resolve_day(doctor_id, date))


@router.get("/{doctor_id}/slots", response_model=List[TimeSlotResponse])
def list_slots(
    doctor_id: str,
    date: str = Query(..., description="YYYY-MM-DD"),
    priority: str = "normal",
    exclude_appointment_id: Optional[str] = None,
    service: SchedulingService = Depends(get_scheduling_service),
):
    slots = service.slots(doctor_id, date, priority=priority, exclude_appointment_id=exclude_appointment_id)
    return [TimeSlotResponse.model_validate(s) for s in slots]


@router.put("/{doctor_id}/availability", response_model=AvailabilityResponse)
def set_availability(
    doctor_id: str,
    payload: AvailabilityUpdate,
    service: SchedulingService = Depends(get_scheduling_service),
):
    return AvailabilityResponse.model_validate(service.set_availability(doctor_id, payload.date, payload.available))


@router.put("/{doctor_id}/blocked-slots", response_model=MessageResponse)
def set_blocked_slot(
    doctor_id: str,
    payload: BlockedSlotUpdate,
    service: SchedulingService = Depends(get_scheduling_service),
):
    service.set_slot_blocked(doctor_id, payload.date, payload.time, payload.blocked)
    state = "blocked" if payload.blocked else "unblocked"
    return MessageResponse(message=f"{payload.time} on {payload.date} {state}")
