"""Scheduling router - FastAPI endpoints for client and admin appointment operations"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Body, Depends, Query
from sqlalchemy.orm import Session

from ...auth import Principal, get_current_principal, require_admin, require_client
from ...database import get_db
from ...services.notification_service import BackgroundTaskNotifier
from .availability import SlotAvailability
from .cancellation import AppointmentCancellationService
from .enums import AppointmentType
from .queries import AppointmentQueries
from .rules import ScheduleRules
from .schemas import (
    AppointmentCreate,
    AppointmentResponse,
    AvailableSlot,
    AvailableSlotsResponse,
    CancelAppointmentRequest,
    ClientCancelAppointmentRequest,
    PlateRestrictionResponse,
    ReassignTechnicianRequest,
    ReworkRedirectResponse,
    UnplannedAppointmentCreate,
)
from .service import AppointmentScheduler, rework_contact_redirect

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/appointments", tags=["Appointments"])
admin_router = APIRouter(prefix="/admin/appointments", tags=["Admin Appointments"])


def get_scheduler(background_tasks: BackgroundTasks, db: Session = Depends(get_db)) -> AppointmentScheduler:
    """Dependency injection for AppointmentScheduler"""
    return AppointmentScheduler(db, notifier=BackgroundTaskNotifier(background_tasks))


def get_cancellation_service(
    background_tasks: BackgroundTasks, db: Session = Depends(get_db)
) -> AppointmentCancellationService:
    """Dependency injection for AppointmentCancellationService"""
    return AppointmentCancellationService(db, notifier=BackgroundTaskNotifier(background_tasks))


def get_queries(db: Session = Depends(get_db)) -> AppointmentQueries:
    return AppointmentQueries(db)


def _slots_response(
    appointment_date: date, appointment_type: AppointmentType, slots: list[SlotAvailability]
) -> AvailableSlotsResponse:
    return AvailableSlotsResponse(
        appointment_date=appointment_date,
        appointment_type=appointment_type,
        slots=[
            AvailableSlot(
                start_time=slot.start_time,
                end_time=slot.end_time,
                available_technicians=slot.free_count,
                reception_deadline=ScheduleRules.reception_deadline(appointment_date, slot.start_time),
            )
            for slot in slots
        ],
    )


def _to_response(appointments) -> list[AppointmentResponse]:
    return [AppointmentResponse.from_appointment(appointment) for appointment in appointments]


# ============================================================================
# CLIENT ROUTES
# ============================================================================


@router.get("/available-slots", response_model=AvailableSlotsResponse)
def get_available_slots(
    appointment_date: date = Query(..., alias="date"),
    appointment_type: AppointmentType = Query(...),
    principal: Principal = Depends(get_current_principal),
    scheduler: AppointmentScheduler = Depends(get_scheduler),
):
    """Slots of the type that still have a free technician on the date"""
    slots = scheduler.get_available_slots(appointment_date, appointment_type)
    return _slots_response(appointment_date, appointment_type, slots)


@router.get("/plate-restriction", response_model=PlateRestrictionResponse)
def check_plate_restriction(
    appointment_date: date = Query(..., alias="date"),
    vehicle_id: Optional[int] = Query(None),
    license_plate: Optional[str] = Query(None),
    principal: Principal = Depends(get_current_principal),
    scheduler: AppointmentScheduler = Depends(get_scheduler),
):
    """Whether the vehicle may circulate on the date"""
    return scheduler.check_plate_restriction(appointment_date, vehicle_id, license_plate)


@router.get("/rework-info", response_model=ReworkRedirectResponse)
def get_rework_info(principal: Principal = Depends(get_current_principal)):
    """Contact details for rework requests, which are not booked online"""
    return rework_contact_redirect().to_dict()


@router.post("", response_model=AppointmentResponse, status_code=201)
def create_appointment(
    data: AppointmentCreate,
    principal: Principal = Depends(require_client),
    scheduler: AppointmentScheduler = Depends(get_scheduler),
):
    """Book an appointment for one of the caller's vehicles"""
    appointment = scheduler.schedule_appointment(
        client_id=principal.user_id,
        vehicle_id=data.vehicle_id,
        appointment_type=data.appointment_type,
        appointment_date=data.appointment_date,
        start_time=data.start_time,
        client_notes=data.client_notes,
        current_mileage=data.current_mileage,
    )
    return AppointmentResponse.from_appointment(appointment)


@router.get("/my", response_model=list[AppointmentResponse])
def get_my_appointments(
    principal: Principal = Depends(require_client),
    queries: AppointmentQueries = Depends(get_queries),
):
    """All of the caller's appointments, newest first"""
    return _to_response(queries.client_history(principal.user_id))


@router.get("/my/vehicle/{vehicle_id}", response_model=list[AppointmentResponse])
def get_my_vehicle_appointments(
    vehicle_id: int,
    principal: Principal = Depends(require_client),
    queries: AppointmentQueries = Depends(get_queries),
):
    return _to_response(queries.client_vehicle_history(principal.user_id, vehicle_id))


@router.get("/my/{appointment_id}", response_model=AppointmentResponse)
def get_my_appointment(
    appointment_id: int,
    principal: Principal = Depends(require_client),
    queries: AppointmentQueries = Depends(get_queries),
):
    appointment = queries.get_client_appointment(principal.user_id, appointment_id)
    return AppointmentResponse.from_appointment(appointment)


@router.delete("/my/{appointment_id}", response_model=AppointmentResponse)
def cancel_my_appointment(
    appointment_id: int,
    data: ClientCancelAppointmentRequest = Body(...),
    principal: Principal = Depends(require_client),
    service: AppointmentCancellationService = Depends(get_cancellation_service),
):
    """Cancel one of the caller's appointments"""
    appointment = service.cancel_client_appointment(principal.user_id, appointment_id, data.reason)
    return AppointmentResponse.from_appointment(appointment)


# ============================================================================
# ADMIN ROUTES
# ============================================================================


@admin_router.get("/agenda", response_model=list[AppointmentResponse])
def get_daily_agenda(
    agenda_date: date = Query(..., alias="date"),
    principal: Principal = Depends(require_admin),
    queries: AppointmentQueries = Depends(get_queries),
):
    """Appointments of the day ordered by start time"""
    return _to_response(queries.daily_agenda(agenda_date))


@admin_router.get("/calendar", response_model=list[AppointmentResponse])
def get_calendar(
    start: date = Query(...),
    end: date = Query(...),
    principal: Principal = Depends(require_admin),
    queries: AppointmentQueries = Depends(get_queries),
):
    return _to_response(queries.calendar(start, end))


@admin_router.get("/available-slots", response_model=AvailableSlotsResponse)
def get_admin_available_slots(
    appointment_date: date = Query(..., alias="date"),
    appointment_type: AppointmentType = Query(...),
    principal: Principal = Depends(require_admin),
    scheduler: AppointmentScheduler = Depends(get_scheduler),
):
    slots = scheduler.get_available_slots(appointment_date, appointment_type)
    return _slots_response(appointment_date, appointment_type, slots)


@admin_router.post("/unplanned", response_model=AppointmentResponse, status_code=201)
def create_unplanned_appointment(
    data: UnplannedAppointmentCreate,
    principal: Principal = Depends(require_admin),
    scheduler: AppointmentScheduler = Depends(get_scheduler),
):
    """Book outside the standard slots, optionally with a chosen technician"""
    appointment = scheduler.schedule_unplanned_appointment(
        vehicle_id=data.vehicle_id,
        appointment_date=data.appointment_date,
        start_time=data.start_time,
        appointment_type=data.appointment_type,
        technician_id=data.technician_id,
        admin_notes=data.admin_notes,
        current_mileage=data.current_mileage,
        enforce_business_hours=data.enforce_business_hours,
    )
    return AppointmentResponse.from_appointment(appointment)


@admin_router.get("/client/{client_id}", response_model=list[AppointmentResponse])
def get_client_appointments(
    client_id: int,
    principal: Principal = Depends(require_admin),
    queries: AppointmentQueries = Depends(get_queries),
):
    return _to_response(queries.client_history(client_id))


@admin_router.get("/vehicle/{vehicle_id}", response_model=list[AppointmentResponse])
def get_vehicle_appointments(
    vehicle_id: int,
    principal: Principal = Depends(require_admin),
    queries: AppointmentQueries = Depends(get_queries),
):
    return _to_response(queries.vehicle_history(vehicle_id))


@admin_router.get("/{appointment_id}", response_model=AppointmentResponse)
def get_appointment(
    appointment_id: int,
    principal: Principal = Depends(require_admin),
    queries: AppointmentQueries = Depends(get_queries),
):
    return AppointmentResponse.from_appointment(queries.get_appointment(appointment_id))


@admin_router.patch("/{appointment_id}/cancel", response_model=AppointmentResponse)
def cancel_appointment(
    appointment_id: int,
    data: CancelAppointmentRequest,
    principal: Principal = Depends(require_admin),
    service: AppointmentCancellationService = Depends(get_cancellation_service),
):
    appointment = service.cancel_appointment(appointment_id, data.reason, notify=data.notify)
    return AppointmentResponse.from_appointment(appointment)


@admin_router.patch("/{appointment_id}/technician", response_model=AppointmentResponse)
def reassign_technician(
    appointment_id: int,
    data: ReassignTechnicianRequest,
    principal: Principal = Depends(require_admin),
    service: AppointmentCancellationService = Depends(get_cancellation_service),
):
    """Move the appointment to another technician without changing its time"""
    appointment = service.reassign_technician(appointment_id, data.technician_id, notify=data.notify)
    return AppointmentResponse.from_appointment(appointment)


__all__ = ["router", "admin_router"]
