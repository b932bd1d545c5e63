#!/usr/bin/env python3
"""
Seed script to create initial data for the application.
Run this after deployment to populate the database with test data.
"""
import asyncio
import datetime
from app.db.database import AsyncSessionLocal, init_db, dispose_db
from app.crud.event import EventRepository
from app.models.user import User
from app.models.event import Event
from app.models.enums import UserRole
from app.core.security import get_password_hash
from app.schemas.attendee import AttendeeCreate
from app.services.admission import AdmissionService

async def seed_data():
    """Seed the database with initial data."""
    print("Starting database seeding...")
    await init_db()

    async with AsyncSessionLocal() as session:
        # Create test users
        admin_user = User(
            name="Admin User",
            email="admin@example.com",
            hashed_password=get_password_hash("admin1234"),
            role=UserRole.ADMIN,
            is_active=True
        )

        organizer_user = User(
            name="Olivia Organizer",
            email="organizer@example.com",
            hashed_password=get_password_hash("organizer123"),
            role=UserRole.ORGANIZER,
            age=34,
            is_active=True
        )

        guest_user = User(
            name="Gary Guest",
            email="guest@example.com",
            hashed_password=get_password_hash("guest1234"),
            role=UserRole.GUEST,
            is_active=True
        )

        session.add_all([admin_user, organizer_user, guest_user])
        await session.commit()

        print(f"Created users: admin(id={admin_user.id}), organizer(id={organizer_user.id}), guest(id={guest_user.id})")

        # Create sample events
        now = datetime.datetime.now(datetime.UTC)
        events = EventRepository(session)

        meetup = await events.create(Event(
            title="Python Meetup",
            description="Monthly community meetup with lightning talks",
            location="Hall B",
            start_time=now + datetime.timedelta(days=7),
            end_time=now + datetime.timedelta(days=7, hours=3),
            capacity=50,
            organizer_id=organizer_user.id,
            organizer=organizer_user.name
        ))

        workshop = await events.create(Event(
            title="Async Workshop",
            description="Hands-on asyncio workshop",
            location="Lab 3",
            start_time=now + datetime.timedelta(days=14),
            end_time=now + datetime.timedelta(days=14, hours=4),
            capacity=2,
            organizer_id=organizer_user.id,
            organizer=organizer_user.name
        ))

        keynote = await events.create(Event(
            title="Annual Keynote",
            description="Company-wide keynote",
            location="Main Hall",
            start_time=now + datetime.timedelta(days=30),
            capacity=500,
            organizer_id=admin_user.id,
            organizer=admin_user.name
        ))
        await session.commit()

        print(f"Created events: meetup(id={meetup.id}), workshop(id={workshop.id}), keynote(id={keynote.id})")

    # Registrations go through the admission service so counters stay in step
    admission = AdmissionService(AsyncSessionLocal)
    for name, email in [("Gary Guest", "guest@example.com"), ("Ada Lovelace", "ada@example.com")]:
        result = await admission.admit_attendee(
            workshop.id,
            AttendeeCreate(name=name, email=email, phone="+1 555 0100")
        )
        print(f"Registered {email} for {workshop.title} ({result.attendee_count}/{workshop.capacity})")

    await dispose_db()
    print("Database seeding completed successfully!")

if __name__ == "__main__":
    asyncio.run(seed_data())
