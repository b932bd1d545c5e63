from typing import Any
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import EventNotFound
from app.core.logging import events_logger
from app.core.permissions import ensure_authorized
from app.core.security import get_current_user, get_current_user_optional, require_roles
from app.crud.attendee import AttendeeRepository
from app.crud.event import EventRepository, build_event, replacement_fields
from app.db.database import get_db
from app.models.enums import EventAction, UserRole
from app.models.user import User
from app.schemas.attendee import (
    AttendeeCreate,
    AttendeeListResponse,
    RegistrationResponse,
    RosterStatsResponse,
    WithdrawalResponse,
)
from app.schemas.event import EventCreate, EventListResponse, EventResponse, EventUpdate
from app.services.admission import AdmissionService, get_admission_service

router = APIRouter(
    prefix="/events",
    tags=["Events"],
    responses={
        401: {"description": "Not authenticated"},
        403: {"description": "Not enough permissions"},
        404: {"description": "Event not found"},
        500: {"description": "Internal server error"}
    }
)

EVENT_EXAMPLE = {
    "id": 1,
    "title": "PyCon Meetup",
    "description": "Monthly Python meetup",
    "location": "Hall B",
    "start_time": "2024-03-20T18:00:00Z",
    "end_time": "2024-03-20T21:00:00Z",
    "capacity": 50,
    "attendee_count": 12,
    "seats_left": 38,
    "organizer": "Jane Doe",
    "organizer_id": 2,
    "created_at": "2024-03-19T15:00:00Z",
    "updated_at": "2024-03-19T15:00:00Z"
}

async def get_event_or_404(db: AsyncSession, event_id: int):
    event = await EventRepository(db).get(event_id)
    if event is None:
        raise EventNotFound(event_id)
    return event

@router.get(
    "/",
    response_model=EventListResponse,
    summary="List events",
    description="List events ordered by start time. Public."
)
async def list_events(
    db: AsyncSession = Depends(get_db),
    skip: int = Query(0, ge=0, description="Number of records to skip"),
    limit: int = Query(100, ge=1, le=500, description="Maximum number of records to return")
) -> Any:
    events = EventRepository(db)
    return {"items": await events.list(skip=skip, limit=limit), "total": await events.count()}

@router.get(
    "/search",
    response_model=EventListResponse,
    summary="Search events",
    description="""
    Case-insensitive search over event title, description and location.

    An empty or blank query is rejected.
    """,
    responses={
        400: {
            "description": "Missing search query",
            "content": {
                "application/json": {
                    "example": {"detail": "Search query is required", "status_code": 400, "type": "http_error"}
                }
            }
        }
    }
)
async def search_events(
    q: str = Query("", description="Text to look for"),
    db: AsyncSession = Depends(get_db)
) -> Any:
    term = q.strip()
    if not term:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Search query is required"
        )
    events = await EventRepository(db).search(term)
    return {"items": events, "total": len(events)}

@router.get(
    "/mine",
    response_model=EventListResponse,
    summary="List my events",
    description="Events organized by the current user."
)
async def list_my_events(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
) -> Any:
    events = await EventRepository(db).list_by_organizer(current_user.id)
    return {"items": events, "total": len(events)}

@router.get(
    "/{event_id}",
    response_model=EventResponse,
    summary="Get event",
    responses={
        200: {
            "description": "Event found",
            "content": {"application/json": {"example": EVENT_EXAMPLE}}
        }
    }
)
async def get_event(
    event_id: int,
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await get_event_or_404(db, event_id)

@router.post(
    "/",
    response_model=EventResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create new event",
    description="""
    Create a new event.

    * Organizers and Admins only
    * The caller becomes the event's organizer
    * The attendee counter always starts at zero
    """,
    responses={
        201: {
            "description": "Event created successfully",
            "content": {"application/json": {"example": {**EVENT_EXAMPLE, "attendee_count": 0, "seats_left": 50}}}
        }
    }
)
async def create_event(
    *,
    db: AsyncSession = Depends(get_db),
    event_in: EventCreate,
    current_user: User = Depends(require_roles(UserRole.ORGANIZER, UserRole.ADMIN))
) -> Any:
    event = await EventRepository(db).create(build_event(event_in, current_user))
    events_logger.info("Event created", extra={"event_id": event.id, "user_id": current_user.id})
    return event

@router.put(
    "/{event_id}",
    response_model=EventResponse,
    summary="Replace event",
    description="""
    Replace the editable fields of an event. Omitted optional fields are cleared.

    The attendee counter and the organizer are never changed by this endpoint.
    Capacity may be lowered below the number of registered attendees; the event
    then accepts no registrations until enough attendees withdraw.
    """
)
async def update_event(
    *,
    event_id: int,
    event_in: EventUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
) -> Any:
    event = await get_event_or_404(db, event_id)
    ensure_authorized(EventAction.UPDATE, event, current_user)

    updated = await EventRepository(db).replace(event_id, replacement_fields(event_in))
    if updated is None:
        raise EventNotFound(event_id)
    events_logger.info("Event updated", extra={"event_id": event_id, "user_id": current_user.id})
    return updated

@router.delete(
    "/{event_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete event",
    description="Delete an event together with all of its registrations."
)
async def delete_event(
    event_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
) -> None:
    event = await get_event_or_404(db, event_id)
    ensure_authorized(EventAction.DELETE, event, current_user)

    if not await EventRepository(db).delete(event_id):
        raise EventNotFound(event_id)
    events_logger.info("Event deleted", extra={"event_id": event_id, "user_id": current_user.id})

@router.post(
    "/{event_id}/register",
    response_model=RegistrationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register for event",
    description="""
    Register an attendee for an event. Authentication is optional.

    * Fails with 409 `EventFull` once capacity is reached
    * Fails with 409 `DuplicateRegistration` if the email (any letter case) is already registered
    * Fails with 503 when the database is unavailable; safe to retry
    """,
    responses={
        201: {
            "description": "Registered",
            "content": {
                "application/json": {
                    "example": {
                        "attendee": {
                            "id": 7,
                            "event_id": 1,
                            "name": "Sam Lee",
                            "email": "sam@example.com",
                            "phone": "+1 555 0100",
                            "dietary_restrictions": None,
                            "special_requests": None,
                            "registered_at": "2024-03-19T16:00:00Z"
                        },
                        "attendee_count": 13,
                        "message": "Successfully registered for event"
                    }
                }
            }
        },
        409: {
            "description": "Event full or already registered",
            "content": {
                "application/json": {
                    "example": {
                        "detail": "Event is full",
                        "reason": "EventFull",
                        "status_code": 409,
                        "type": "domain_error"
                    }
                }
            }
        },
        503: {"description": "Storage temporarily unavailable"}
    }
)
async def register_for_event(
    event_id: int,
    attendee_in: AttendeeCreate,
    admission: AdmissionService = Depends(get_admission_service),
    current_user: User | None = Depends(get_current_user_optional)
) -> Any:
    result = await admission.admit_attendee(event_id, attendee_in)
    events_logger.info(
        "Registration accepted",
        extra={"event_id": event_id, "user_id": current_user.id if current_user else None}
    )
    return {"attendee": result.attendee, "attendee_count": result.attendee_count}

@router.get(
    "/{event_id}/attendees",
    response_model=AttendeeListResponse,
    summary="List attendees"
)
async def list_attendees(
    event_id: int,
    db: AsyncSession = Depends(get_db)
) -> Any:
    await get_event_or_404(db, event_id)
    attendees = await AttendeeRepository(db).list_by_event(event_id)
    return {"items": attendees, "total": len(attendees)}

@router.delete(
    "/{event_id}/attendees/{attendee_id}",
    response_model=WithdrawalResponse,
    summary="Withdraw registration",
    description="""
    Remove an attendee from an event and release their seat.

    Only the event's organizer or an Admin may withdraw attendees. Withdrawing
    the same attendee twice fails with 404 the second time.
    """
)
async def withdraw_attendee(
    event_id: int,
    attendee_id: int,
    db: AsyncSession = Depends(get_db),
    admission: AdmissionService = Depends(get_admission_service),
    current_user: User = Depends(get_current_user)
) -> Any:
    event = await get_event_or_404(db, event_id)
    ensure_authorized(EventAction.WITHDRAW, event, current_user)

    result = await admission.withdraw_attendee(event_id, attendee_id)
    return {
        "event_id": result.event_id,
        "attendee_id": result.attendee_id,
        "attendee_count": result.attendee_count
    }

@router.get(
    "/{event_id}/stats",
    response_model=RosterStatsResponse,
    summary="Registration stats",
    description="Capacity, attendee counter and roster size. Organizer or Admin only."
)
async def event_stats(
    event_id: int,
    db: AsyncSession = Depends(get_db),
    admission: AdmissionService = Depends(get_admission_service),
    current_user: User = Depends(get_current_user)
) -> Any:
    event = await get_event_or_404(db, event_id)
    ensure_authorized(EventAction.VIEW_STATS, event, current_user)

    stats = await admission.roster_stats(event_id)
    return {
        "event_id": stats.event_id,
        "capacity": stats.capacity,
        "attendee_count": stats.attendee_count,
        "roster_size": stats.roster_size,
        "seats_left": stats.seats_left
    }
