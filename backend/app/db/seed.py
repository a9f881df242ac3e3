"""Demo account seeding for development and staging."""

import logging
from dataclasses import dataclass

from backend.app.auth import hash_password
from backend.app.db.repositories import DuplicateEmailError, Storage
from backend.app.models.common import Plan, Role
from backend.app.models.users import User
from backend.app.plans import plan_window

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DemoAccount:
    email: str
    password: str
    plan: Plan
    role: Role


DEMO_ACCOUNTS = (
    DemoAccount("free@example.com", "FreeUser1234", Plan.FREE, Role.user),
    DemoAccount("pro@example.com", "ProUser1234", Plan.PRO_MONTHLY, Role.user),
    DemoAccount("admin@example.com", "Admin1234", Plan.FREE, Role.admin),
)


def seed_demo_accounts(storage: Storage) -> int:
    """Create missing demo accounts.

    This function is idempotent - safe to run multiple times.

    Returns:
        Number of accounts created
    """
    created = 0
    for account in DEMO_ACCOUNTS:
        if storage.get_user_by_email(account.email) is not None:
            continue
        started_at, expires_at = plan_window(account.plan)
        try:
            storage.create_user(
                User(
                    email=account.email,
                    password_hash=hash_password(account.password),
                    plan=account.plan,
                    role=account.role,
                    plan_started_at=started_at,
                    plan_expires_at=expires_at,
                )
            )
        except DuplicateEmailError:
            # Another worker seeded it first
            continue
        created += 1
        logger.info(f"Created {account.role.value} demo account: {account.email}")
    return created
