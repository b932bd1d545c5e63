"""Registration admission.

Admitting an attendee and bumping the event's attendee counter happen in one
transaction per attempt. The counter is only ever moved by a conditional
UPDATE, so concurrent admissions cannot push it past capacity, and a failed
increment rolls back the attendee row inserted just before it.
"""

import asyncio
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

from fastapi import Depends
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import settings
from app.core.exceptions import (
    AdmissionError,
    AttendeeNotFound,
    DuplicateRegistration,
    EventFull,
    EventNotFound,
    InvariantViolation,
    StoreTimeout,
    StoreUnavailable,
)
from app.core.logging import admission_logger
from app.crud.attendee import AttendeeRepository
from app.crud.event import EventRepository
from app.crud.interfaces import AttendeeRepositoryFactory, EventRepositoryFactory
from app.db.database import get_session_factory
from app.models.attendee import Attendee
from app.schemas.attendee import AttendeeCreate

T = TypeVar("T")


@dataclass(frozen=True)
class AdmissionResult:
    attendee: Attendee
    attendee_count: int


@dataclass(frozen=True)
class WithdrawalResult:
    event_id: int
    attendee_id: int
    attendee_count: int


@dataclass(frozen=True)
class RosterStats:
    event_id: int
    capacity: int
    attendee_count: int
    roster_size: int

    @property
    def seats_left(self) -> int:
        return max(self.capacity - self.attendee_count, 0)


def is_transient(exc: DBAPIError) -> bool:
    """Whether a driver error is worth retrying (locks, dropped connections)."""
    return exc.connection_invalidated or isinstance(exc, OperationalError)


def is_same_registration(attendee: Attendee, attendee_in: AttendeeCreate) -> bool:
    """Whether a stored attendee carries exactly the submitted registration."""
    return all(getattr(attendee, field) == value for field, value in attendee_in.model_dump().items())


class AdmissionService:
    """Admits and withdraws attendees.

    Holds no state between calls: every attempt opens its own session from the
    injected factory and binds fresh repositories to it.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        event_repository: EventRepositoryFactory = EventRepository,
        attendee_repository: AttendeeRepositoryFactory = AttendeeRepository,
        *,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff: float | None = None,
        verify_roster: bool | None = None,
    ):
        self.session_factory = session_factory
        self.event_repository = event_repository
        self.attendee_repository = attendee_repository
        self.timeout = settings.STORE_TIMEOUT_SECONDS if timeout is None else timeout
        self.max_retries = settings.ADMISSION_MAX_RETRIES if max_retries is None else max_retries
        self.backoff = settings.ADMISSION_RETRY_BACKOFF_SECONDS if backoff is None else backoff
        self.verify_roster = settings.ADMISSION_VERIFY_ROSTER if verify_roster is None else verify_roster

    async def admit_attendee(self, event_id: int, attendee_in: AttendeeCreate) -> AdmissionResult:
        """Register an attendee for an event.

        Raises EventNotFound, EventFull or DuplicateRegistration without
        writing anything, StoreUnavailable once retries are exhausted, and
        InvariantViolation if the counter no longer matches the roster. When a
        retry follows a timeout and finds this exact registration already
        stored, the earlier attempt committed and its attendee is returned.
        """
        if not attendee_in.email or not attendee_in.email.strip():
            raise ValueError("Attendee email must not be empty")

        async def attempt(after_timeout: bool) -> AdmissionResult:
            try:
                async with self.session_factory() as session:
                    async with session.begin():
                        events = self.event_repository(session)
                        attendees = self.attendee_repository(session)

                        event = await events.get(event_id)
                        if event is None:
                            raise EventNotFound(event_id)
                        if after_timeout:
                            # The timed-out attempt may have committed before it was cancelled
                            existing = await attendees.get_by_event_and_email(event_id, attendee_in.email)
                            if existing is not None and is_same_registration(existing, attendee_in):
                                return AdmissionResult(attendee=existing, attendee_count=event.attendee_count)
                        if event.is_full:
                            raise EventFull(event_id)
                        if await attendees.get_by_event_and_email(event_id, attendee_in.email) is not None:
                            raise DuplicateRegistration(event_id, attendee_in.email)

                        attendee = await attendees.create(
                            Attendee(event_id=event_id, **attendee_in.model_dump())
                        )

                        new_count = await events.try_increment_if_below_capacity(event_id)
                        if new_count is None:
                            # Leaving the transaction block rolls back the insert above
                            raise EventFull(event_id)

                        if self.verify_roster:
                            roster_size = await attendees.count_by_event(event_id)
                            if roster_size != new_count:
                                raise InvariantViolation(event_id, new_count, roster_size)
            except IntegrityError:
                settled = await settle_conflict(after_timeout)
                if settled is None:
                    raise
                return settled

            return AdmissionResult(attendee=attendee, attendee_count=new_count)

        async def settle_conflict(after_timeout: bool) -> AdmissionResult | None:
            """Explain a constraint failure from a fresh session.

            The event was deleted under us (foreign key) or a registration with
            the same email committed first (unique key). Returns None when
            neither is the case, so the original error propagates.
            """
            async with self.session_factory() as session:
                event = await self.event_repository(session).get(event_id)
                if event is None:
                    raise EventNotFound(event_id)
                existing = await self.attendee_repository(session).get_by_event_and_email(
                    event_id, attendee_in.email
                )
            if existing is None:
                return None
            if after_timeout and is_same_registration(existing, attendee_in):
                return AdmissionResult(attendee=existing, attendee_count=event.attendee_count)
            raise DuplicateRegistration(event_id, attendee_in.email)

        result = await self._run("admit", event_id, attempt)
        admission_logger.info(
            "Attendee admitted",
            extra={"event_id": event_id, "attendee_id": result.attendee.id, "attendee_count": result.attendee_count},
        )
        return result

    async def withdraw_attendee(self, event_id: int, attendee_id: int) -> WithdrawalResult:
        """Remove an attendee and release their seat.

        The counter moves only when a row was actually deleted, so repeating a
        withdrawal fails with AttendeeNotFound and leaves the counter alone.
        """
        async def attempt(_after_timeout: bool) -> WithdrawalResult:
            async with self.session_factory() as session:
                async with session.begin():
                    events = self.event_repository(session)
                    attendees = self.attendee_repository(session)

                    if await events.get(event_id) is None:
                        raise EventNotFound(event_id)
                    if not await attendees.delete(attendee_id, event_id=event_id):
                        raise AttendeeNotFound(attendee_id)

                    new_count = await events.decrement_floor_zero(event_id)
                    if new_count is None:
                        # A row was deleted but the counter was already zero
                        roster_size = await attendees.count_by_event(event_id)
                        raise InvariantViolation(event_id, 0, roster_size + 1)

            return WithdrawalResult(event_id=event_id, attendee_id=attendee_id, attendee_count=new_count)

        result = await self._run("withdraw", event_id, attempt)
        admission_logger.info(
            "Attendee withdrawn",
            extra={"event_id": event_id, "attendee_id": attendee_id, "attendee_count": result.attendee_count},
        )
        return result

    async def roster_stats(self, event_id: int) -> RosterStats:
        """Capacity, counter and true roster size of an event."""
        async def attempt(_after_timeout: bool) -> RosterStats:
            async with self.session_factory() as session:
                events = self.event_repository(session)
                attendees = self.attendee_repository(session)

                event = await events.get(event_id)
                if event is None:
                    raise EventNotFound(event_id)
                roster_size = await attendees.count_by_event(event_id)

            if roster_size != event.attendee_count:
                raise InvariantViolation(event_id, event.attendee_count, roster_size)
            return RosterStats(
                event_id=event_id,
                capacity=event.capacity,
                attendee_count=event.attendee_count,
                roster_size=roster_size,
            )

        return await self._run("stats", event_id, attempt)

    async def _run(self, operation: str, event_id: int, attempt: Callable[[bool], Awaitable[T]]) -> T:
        """Run one attempt under the store timeout, retrying transient failures.

        Domain outcomes (not found, full, duplicate, invariant) are raised
        immediately. Timeouts, transient driver errors and retryable
        AdmissionErrors are retried. Each attempt is told whether an earlier
        one timed out, since a timed-out attempt may still have committed.
        """
        attempts = 0
        timed_out = False
        while True:
            attempts += 1
            try:
                return await asyncio.wait_for(attempt(timed_out), timeout=self.timeout)
            except AdmissionError as exc:
                if not exc.retryable:
                    self._log_rejection(operation, event_id, exc)
                    raise
                failure, cause = exc, exc.__cause__
            except asyncio.TimeoutError as exc:
                failure, cause = StoreTimeout(self.timeout), exc
            except DBAPIError as exc:
                if not is_transient(exc):
                    raise
                failure, cause = StoreUnavailable(), exc
            timed_out = timed_out or isinstance(failure, StoreTimeout)

            if attempts > self.max_retries:
                admission_logger.error(
                    f"{operation} failed after {attempts} attempts",
                    extra={"event_id": event_id, "reason": failure.reason, "error": str(cause or failure)},
                )
                raise failure from cause

            delay = self.backoff * 2 ** (attempts - 1) + random.uniform(0, self.backoff)
            admission_logger.warning(
                f"{operation} attempt {attempts} failed, retrying in {delay:.3f}s",
                extra={"event_id": event_id, "reason": failure.reason, "error": str(cause or failure)},
            )
            await asyncio.sleep(delay)

    @staticmethod
    def _log_rejection(operation: str, event_id: int, exc: AdmissionError) -> None:
        extra = {"event_id": event_id, "reason": exc.reason}
        if isinstance(exc, InvariantViolation):
            admission_logger.critical(
                f"{operation}: attendee counter diverged from roster",
                extra={**extra, "attendee_count": exc.attendee_count, "roster_size": exc.roster_size},
            )
        else:
            admission_logger.info(f"{operation} rejected: {exc.detail}", extra=extra)


def get_admission_service(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> AdmissionService:
    """Dependency building a fresh AdmissionService per request"""
    return AdmissionService(session_factory)
