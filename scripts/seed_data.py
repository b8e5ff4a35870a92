"""
Seed script to populate a demo organization.

Creates:
- One organization
- An OWNER, an ADMIN and a VIEWER member
- A handful of tasks owned by or assigned to those members

Safe to run repeatedly; existing rows are left untouched.

Usage:
    python -m scripts.seed_data
"""
import asyncio
import os
from datetime import datetime, timedelta, timezone
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import get_db, init_db
from app.features.organizations.models import Organization
from app.features.permissions.registry import Role
from app.features.tasks.models import Task, TaskPriority, TaskStatus
from app.features.users.auth import hash_password
from app.features.users.models import User
from app.utils import get_logger


log = get_logger(__name__)


DEMO_ORGANIZATION = ("Acme Corp", "Demo organization")

DEMO_PASSWORD = os.environ.get("SEED_PASSWORD", "password123")

DEMO_USERS = [
    # (email, name, role)
    ("owner@acme.com", "Olivia Owner", Role.OWNER),
    ("admin@acme.com", "Adam Admin", Role.ADMIN),
    ("viewer@acme.com", "Vera Viewer", Role.VIEWER),
]

DEMO_TASKS = [
    # (title, status, priority, owner email, assignee email, due in days)
    ("Set up project board", TaskStatus.COMPLETED, TaskPriority.HIGH, "owner@acme.com", None, -3),
    ("Review quarterly goals", TaskStatus.IN_PROGRESS, TaskPriority.URGENT, "admin@acme.com", "owner@acme.com", 2),
    ("Draft onboarding checklist", TaskStatus.TODO, TaskPriority.MEDIUM, "admin@acme.com", "viewer@acme.com", 7),
    ("Update personal notes", TaskStatus.TODO, TaskPriority.LOW, "viewer@acme.com", None, None),
]


async def seed_organization(db: AsyncSession) -> Organization:
    name, description = DEMO_ORGANIZATION
    result = await db.execute(select(Organization).where(Organization.name == name))
    organization = result.scalar_one_or_none()

    if organization:
        log.debug("Organization %r already exists, skipping", name)
        return organization

    organization = Organization(name=name, description=description)
    db.add(organization)
    await db.commit()
    await db.refresh(organization)
    log.info("Created organization: %s", name)
    return organization


async def seed_users(db: AsyncSession, organization: Organization) -> dict[str, User]:
    """
    Create demo members.

    Returns:
        Dictionary mapping email to User
    """
    users_map = {}

    for email, name, role in DEMO_USERS:
        result = await db.execute(select(User).where(User.email == email))
        existing = result.scalar_one_or_none()

        if existing:
            log.debug("User %r already exists, skipping", email)
            users_map[email] = existing
            continue

        user = User(
            email=email,
            name=name,
            password_hash=hash_password(DEMO_PASSWORD),
            role=role,
            organization_id=organization.id,
        )
        db.add(user)
        users_map[email] = user
        log.info("Created %s user: %s", role.value, email)

    await db.commit()
    for user in users_map.values():
        await db.refresh(user)
    return users_map


async def seed_tasks(db: AsyncSession, organization: Organization, users_map: dict[str, User]):
    now = datetime.now(timezone.utc)

    for title, task_status, priority, owner_email, assignee_email, due_in in DEMO_TASKS:
        result = await db.execute(
            select(Task).where(Task.organization_id == organization.id, Task.title == title)
        )
        if result.scalar_one_or_none():
            log.debug("Task %r already exists, skipping", title)
            continue

        db.add(Task(
            title=title,
            status=task_status,
            priority=priority,
            type="work",
            due_date=now + timedelta(days=due_in) if due_in is not None else None,
            owner_id=users_map[owner_email].id,
            assigned_to_id=users_map[assignee_email].id if assignee_email else None,
            organization_id=organization.id,
        ))
        log.info("Created task: %s", title)

    await db.commit()


async def main():
    """Create tables, then seed the demo organization, members and tasks."""
    log.info("Starting demo data seeding...")
    await init_db()

    async for db in get_db():
        try:
            organization = await seed_organization(db)
            users_map = await seed_users(db, organization)
            await seed_tasks(db, organization, users_map)

            log.info("Seeding completed successfully!")
            for email, _, role in DEMO_USERS:
                log.info("  - %s (%s)", email, role.value)
        except Exception:
            log.error("Error seeding demo data", exc_info=True)
            await db.rollback()
            raise

        break  # Only use first session


if __name__ == "__main__":
    asyncio.run(main())
