from __future__ import annotations

import uuid

from sqlalchemy import select
from sqlalchemy.orm import Session

from .db import get_session_factory
from .errors import ConfigError
from .models import Organization, Role, User

SAMPLE_ORG_ID = uuid.UUID("11111111-1111-1111-1111-111111111111")
SAMPLE_ORG_NAME = "Access Insights (Sample)"
SAMPLE_USERS = (
    ("azure|access-insights-admin-sub", "admin@accessinsights.example", "Sample Admin", Role.ADMIN),
    ("azure|access-insights-creator-sub", "creator@accessinsights.example", "Sample Creator", Role.CREATOR),
    ("azure|access-insights-participant-sub", "participant@accessinsights.example", "Sample Participant", Role.PARTICIPANT),
)


def seed_sample_data(db: Session) -> tuple[Organization, list[User]]:
    """Insert the sample organization and its users if they are missing."""
    org = db.scalar(select(Organization).where(Organization.id == SAMPLE_ORG_ID))
    if org is None:
        org = Organization(id=SAMPLE_ORG_ID, name=SAMPLE_ORG_NAME)
        db.add(org)
        db.flush()

    seeded: list[User] = []
    for subject, email, display_name, role in SAMPLE_USERS:
        user = db.scalar(select(User).where(User.subject == subject))
        if user is None:
            user = User(
                organization_id=SAMPLE_ORG_ID,
                subject=subject,
                email=email,
                display_name=display_name,
                role=role,
            )
            db.add(user)
        seeded.append(user)
    db.flush()
    return org, seeded


def main() -> None:
    factory = get_session_factory()
    if factory is None:
        raise ConfigError("DATABASE_URL is not set")
    with factory() as db:
        _, seeded = seed_sample_data(db)
        db.commit()
    print(f"Seed complete: org={SAMPLE_ORG_ID} users={len(seeded)}")


if __name__ == "__main__":
    main()
