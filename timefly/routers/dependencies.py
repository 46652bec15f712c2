from fastapi import Depends
from sqlmodel import Session

from ..application.services.appointments_service import AppointmentsService
from ..application.services.scheduling_service import SchedulingService
from ..config import Settings, get_settings
from ..database import get_session
from ..infrastructure.notifications.log_notifier import LoggingNotifier
from ..infrastructure.persistence.sqlalchemy.repositories.appointments_repository_sql import SqlAppointmentsRepository
from ..infrastructure.persistence.sqlalchemy.repositories.doctors_repository_sql import SqlDoctorsRepository
from ..infrastructure.persistence.sqlalchemy.repositories.waiting_list_repository_sql import SqlWaitingListRepository


def get_scheduling_service(
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
) -> SchedulingService:
    return SchedulingService(
        doctors=SqlDoctorsRepository(session),
        appointments=SqlAppointmentsRepository(session, settings.BOOKING_MAX_RETRIES),
        settings=settings,
    )


def get_appointments_service(
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
) -> AppointmentsService:
    return AppointmentsService(
        repo=SqlAppointmentsRepository(session, settings.BOOKING_MAX_RETRIES),
        doctors=SqlDoctorsRepository(session),
        waiting_list=SqlWaitingListRepository(session),
        notifier=LoggingNotifier(),
        settings=settings,
    )
