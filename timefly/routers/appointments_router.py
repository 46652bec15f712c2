from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query
import logging

from ..application.services.appointments_service import AppointmentsService
from ..application.services.scheduling_service import SchedulingService
from ..schemas.appointments.appointment import (
    AppointmentCancel,
    AppointmentCreate,
    AppointmentReschedule,
    AppointmentResponse,
    BookingResponse,
    CancellationResponse,
    QueueResponse,
    StatusUpdate,
    WaitingListResponse,
)
from ..schemas.common.common import ErrorResponse
from ..schemas.doctors.doctor import DayScheduleResponse
from .dependencies import get_appointments_service, get_scheduling_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/appointments",
    tags=["Appointments"],
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)


@router.post("/", response_model=BookingResponse, status_code=201)
def book_appointment(
    payload: AppointmentCreate,
    service: AppointmentsService = Depends(get_appointments_service),
):
    try:
        outcome = service.book(
            patient_name=payload.patient_name,
            doctor_id=payload.doctor_id,
            date=payload.date,
            time=payload.time,
            priority=payload.priority,
            age=payload.age,
            condition=payload.condition,
            email=payload.email,
            phone=payload.phone,
            booked_by=payload.booked_by,
            join_waiting_list=payload.join_waiting_list,
        )
        return BookingResponse.model_validate(outcome)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error booking appointment: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to book appointment")


@router.get("/queue", response_model=QueueResponse)
def get_queue(
    date: str = Query(..., description="YYYY-MM-DD"),
    doctor_id: Optional[str] = None,
    service: SchedulingService = Depends(get_scheduling_service),
):
    return QueueResponse.model_validate(service.queue(date, doctor_id))


@router.get("/day/{date}", response_model=DayScheduleResponse)
def get_day(date: str, service: SchedulingService = Depends(get_scheduling_service)):
    return DayScheduleResponse.model_validate(service.day(date))


@router.get("/calendar/{year}/{month}", response_model=List[DayScheduleResponse])
def get_calendar(year: int, month: int, service: SchedulingService = Depends(get_scheduling_service)):
    return [DayScheduleResponse.model_validate(d) for d in service.calendar(year, month)]


@router.get("/waiting-list", response_model=List[WaitingListResponse])
def get_waiting_list(
    doctor_id: Optional[str] = None,
    date: Optional[str] = None,
    service: AppointmentsService = Depends(get_appointments_service),
):
    return [WaitingListResponse.model_validate(e) for e in service.waiting_list_entries(doctor_id, date)]


@router.get("/{appointment_id}", response_model=AppointmentResponse)
def get_appointment(appointment_id: str, service: AppointmentsService = Depends(get_appointments_service)):
    return AppointmentResponse.model_validate(service.get(appointment_id))


@router.put("/{appointment_id}/reschedule", response_model=AppointmentResponse)
def reschedule_appointment(
    appointment_id: str,
    payload: AppointmentReschedule,
    service: AppointmentsService = Depends(get_appointments_service),
):
    moved = service.reschedule(appointment_id, payload.date, payload.time, payload.priority)
    return AppointmentResponse.model_validate(moved)


@router.put("/{appointment_id}/cancel", response_model=CancellationResponse)
def cancel_appointment(
    appointment_id: str,
    payload: Optional[AppointmentCancel] = None,
    service: AppointmentsService = Depends(get_appointments_service),
):
    try:
        cancelled, promoted = service.cancel(appointment_id, payload.reason if payload else None)
        return CancellationResponse(
            cancelled=AppointmentResponse.model_validate(cancelled),
            promoted=AppointmentResponse.model_validate(promoted) if promoted else None,
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error cancelling appointment {appointment_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to cancel appointment")


@router.put("/{appointment_id}/status", response_model=AppointmentResponse)
def update_status(
    appointment_id: str,
    payload: StatusUpdate,
    service: AppointmentsService = Depends(get_appointments_service),
):
    return AppointmentResponse.model_validate(service.update_status(appointment_id, payload.status))
