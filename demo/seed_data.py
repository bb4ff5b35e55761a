#!/usr/bin/env python3
"""
Seed script for the ViolationLedger demo.

This script creates sample data in the application database including:
- Hosts and registered visitors
- Violations at every stage of the lifecycle, including repeat offenders
- Status change history for the violations that have moved on
- A few complaints

It finishes by printing a guard token for calling the API.

Usage:
    cd backend
    python ../demo/seed_data.py

Or from the project root:
    PYTHONPATH=backend python demo/seed_data.py
"""

import asyncio
import sys
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path

# Add backend to path for imports
backend_path = Path(__file__).parent.parent / "backend"
if backend_path.exists():
    sys.path.insert(0, str(backend_path))

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from violation_ledger.database import async_session_maker, init_db
from violation_ledger.core.lifecycle import apply_transition
from violation_ledger.models import (
    Complaint,
    ComplaintStatus,
    Host,
    StatusChange,
    UserRole,
    Violation,
    ViolationStatus,
    Visitor,
)
from violation_ledger.services.identity import issue_token


GUARD_UID = "guard-demo-01"

SAMPLE_HOSTS = [
    "Alice Mwangi",
    "Bob Otieno",
    "Carol Njeri",
    "Daniel Kamau",
    "Acme Logistics",
]

SAMPLE_VISITORS = [
    {"name": "Peter Ouma", "host_index": 0, "plate_number": "KDA 123A", "vehicle_category": "car", "gps_id": "GPS-1001"},
    {"name": "Mary Achieng", "host_index": 1, "plate_number": "KCB 456B", "vehicle_category": "car", "gps_id": "GPS-1002"},
    {"name": "Freight Driver", "host_index": 4, "plate_number": "KBZ 789C", "vehicle_category": "truck", "gps_id": "GPS-1003"},
]

# Each entry ends in the listed status; "path" is the sequence of statuses it went through.
SAMPLE_VIOLATIONS = [
    {
        "plate_number": "KDA 123A",
        "location": "Gate A - Visitor Parking",
        "violation_type": "overstay",
        "host_index": 0,
        "hours_ago": 1,
        "path": [],
    },
    {
        "plate_number": "KDA 123A",
        "location": "Gate A - Loading Bay",
        "violation_type": "restricted_zone",
        "host_index": 0,
        "hours_ago": 20,
        "path": [ViolationStatus.WARNING_SENT],
    },
    {
        "plate_number": "KDA 123A",
        "location": "Block C - Fire Lane",
        "violation_type": "fire_lane",
        "host_index": 0,
        "hours_ago": 50,
        "path": [ViolationStatus.WARNING_SENT, ViolationStatus.ESCALATED],
    },
    {
        "plate_number": "KCB 456B",
        "location": "Block B - Resident Parking",
        "violation_type": "unauthorized_parking",
        "host_index": 1,
        "hours_ago": 3,
        "path": [ViolationStatus.WARNING_SENT, ViolationStatus.ESCALATED, ViolationStatus.HOST_COMPLIED],
    },
    {
        "plate_number": "KCB 456B",
        "location": "Gate B - Exit Lane",
        "violation_type": "blocking_exit",
        "host_index": 1,
        "hours_ago": 72,
        "path": [ViolationStatus.RESOLVED],
        "ticket_issued": True,
    },
    {
        "plate_number": "KBZ 789C",
        "location": "Gate A - Visitor Parking",
        "violation_type": "overstay",
        "host_index": 4,
        "hours_ago": 0,
        "path": [],
    },
]

SAMPLE_COMPLAINTS = [
    {
        "title": "Truck blocking driveway",
        "description": "A delivery truck has been parked across the Block C driveway since morning.",
        "reporter_name": "Carol Njeri",
        "location": "Block C - Driveway",
        "plate_number": "KBZ 789C",
        "status": ComplaintStatus.PENDING,
    },
    {
        "title": "Repeated fire lane parking",
        "description": "Same visitor car parks in the fire lane every weekend.",
        "reporter_name": "Daniel Kamau",
        "location": "Block C - Fire Lane",
        "plate_number": "KDA 123A",
        "status": ComplaintStatus.IN_REVIEW,
    },
]


async def clear_existing_data(session: AsyncSession) -> None:
    """Clear existing demo data from the database."""
    print("Clearing existing data...")

    # Delete in order respecting foreign keys
    await session.execute(text("DELETE FROM status_changes"))
    await session.execute(text("DELETE FROM complaints"))
    await session.execute(text("DELETE FROM violations"))
    await session.execute(text("DELETE FROM visitors"))
    await session.execute(text("DELETE FROM hosts"))

    await session.commit()
    print("Existing data cleared.")


async def seed_hosts_and_visitors(session: AsyncSession) -> list[Host]:
    """Create hosts and the visitors registered against them."""
    print("Creating hosts...")
    hosts = []
    for name in SAMPLE_HOSTS:
        host = Host(id=uuid.uuid4(), name=name)
        session.add(host)
        hosts.append(host)
        print(f"  Created host: {host.name}")

    print("Registering visitors...")
    base_time = datetime.now(timezone.utc)
    for i, visitor_data in enumerate(SAMPLE_VISITORS):
        host = hosts[visitor_data["host_index"]]
        visitor = Visitor(
            id=uuid.uuid4(),
            name=visitor_data["name"],
            host_id=str(host.id),
            host_name=host.name,
            plate_number=visitor_data["plate_number"],
            vehicle_category=visitor_data["vehicle_category"],
            gps_id=visitor_data["gps_id"],
            created_at=base_time - timedelta(days=3, hours=i),
            created_by=GUARD_UID,
        )
        session.add(visitor)
        print(f"  Registered visitor: {visitor.name} ({visitor.plate_number}) for {host.name}")

    await session.flush()
    return hosts


async def seed_violations(session: AsyncSession, hosts: list[Host]) -> list[Violation]:
    """Create violations and walk each one along its lifecycle path."""
    print("Creating sample violations...")

    violations = []
    base_time = datetime.now(timezone.utc)

    for violation_data in SAMPLE_VIOLATIONS:
        host = hosts[violation_data["host_index"]]
        detected_at = base_time - timedelta(hours=violation_data["hours_ago"], minutes=5)

        violation = Violation(
            id=uuid.uuid4(),
            plate_number=violation_data["plate_number"],
            location=violation_data["location"],
            violation_type=violation_data["violation_type"],
            host_id=str(host.id),
            host_name=host.name,
            status=ViolationStatus.PENDING.value,
            detected_at=detected_at,
            created_by=GUARD_UID,
            ticket_issued=False,
        )
        session.add(violation)
        await session.flush()

        # Space the stage changes 20 minutes apart
        for step, next_status in enumerate(violation_data["path"], start=1):
            extra = None
            if next_status == ViolationStatus.RESOLVED and violation_data.get("ticket_issued"):
                extra = {"ticket_issued": True}
            stamped_at = detected_at + timedelta(minutes=20 * step)
            previous_status = violation.status
            for column, value in apply_transition(violation, next_status, extra, now=stamped_at).items():
                setattr(violation, column, value)
            session.add(
                StatusChange(
                    id=uuid.uuid4(),
                    violation_id=violation.id,
                    from_status=previous_status,
                    to_status=violation.status,
                    actor_id=GUARD_UID,
                    extra_fields=sorted(extra or {}),
                    created_at=stamped_at,
                )
            )

        violations.append(violation)
        print(f"  Created violation: {violation.plate_number} at {violation.location} ({violation.status})")

    await session.flush()
    return violations


async def seed_complaints(session: AsyncSession) -> None:
    """Create sample complaints."""
    print("Creating complaints...")

    base_time = datetime.now(timezone.utc)
    for i, complaint_data in enumerate(SAMPLE_COMPLAINTS):
        created_at = base_time - timedelta(hours=6 * (i + 1))
        complaint = Complaint(
            id=uuid.uuid4(),
            title=complaint_data["title"],
            description=complaint_data["description"],
            reporter_name=complaint_data["reporter_name"],
            location=complaint_data["location"],
            plate_number=complaint_data["plate_number"],
            status=complaint_data["status"].value,
            created_at=created_at,
            updated_at=created_at,
        )
        session.add(complaint)
        print(f"  Created complaint: {complaint.title} ({complaint.status})")

    await session.flush()


async def main() -> None:
    """Main function to seed the database."""
    print("=" * 60)
    print("ViolationLedger - Demo Data Seeder")
    print("=" * 60)
    print()

    try:
        await init_db()

        async with async_session_maker() as session:
            # Clear existing data
            await clear_existing_data(session)

            # Seed data
            hosts = await seed_hosts_and_visitors(session)
            violations = await seed_violations(session, hosts)
            await seed_complaints(session)

            # Commit all changes
            await session.commit()

        print()
        print("=" * 60)
        print("Demo data seeded successfully!")
        print("=" * 60)
        print()
        print("Summary:")
        print(f"  - {len(SAMPLE_HOSTS)} hosts")
        print(f"  - {len(SAMPLE_VISITORS)} visitors")
        print(f"  - {len(violations)} violations")
        for status in ViolationStatus:
            count = sum(1 for v in violations if v.status == status.value)
            print(f"    - {status.value}: {count}")
        print(f"  - {len(SAMPLE_COMPLAINTS)} complaints")
        print()
        print("Guard token for the API (Authorization: Bearer <token>):")
        print(issue_token(GUARD_UID, UserRole.GUARD, expires_minutes=24 * 60))
        print()

    except Exception as e:
        print(f"Error seeding data: {e}")
        raise


if __name__ == "__main__":
    asyncio.run(main())
