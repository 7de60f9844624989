"""Demo accounts for local development.

Inserted only when the users table is empty and ``seed_demo_users`` is enabled: one
account per role, with the requester pinned to the recommender.
"""

from uuid import uuid4

from loguru import logger

from tms_api.auth.credentials import CredentialVerifier
from tms_api.workflow.db.repository_user import UserRepository
from tms_api.workflow.enums import UserRole

DEMO_PASSWORD = "123"

# Recommender first so the requester can be pinned to it
DEMO_ACCOUNTS = [
    ("1001", "Manager User", "manager", UserRole.APPROVER),
    ("1002", "Supervisor User", "supervisor", UserRole.FIRST_LINE_REVIEWER),
    ("1004", "PD User", "pduser", UserRole.RECOMMENDER),
    ("1003", "Regular User", "user", UserRole.REQUESTER),
]


async def seed_demo_users(users: UserRepository, verifier: CredentialVerifier) -> int:
    """
    Create the demo accounts if no user exists yet.

    Parameters
    ----------
    users : UserRepository
        Repository bound to the requisition database
    verifier : CredentialVerifier
        Produces the stored credential for the demo password

    Returns
    -------
    int
        Number of accounts created (0 when users already exist)
    """
    if await users.count() > 0:
        logger.debug("Users already present - skipping demo seed")
        return 0

    pd_id = str(uuid4())
    accounts = []
    for employee_number, name, username, role in DEMO_ACCOUNTS:
        user_id = pd_id if role == UserRole.RECOMMENDER else str(uuid4())
        accounts.append(
            {
                "id": user_id,
                "employee_number": employee_number,
                "name": name,
                "username": username,
                "role": role.value,
                "pd_id": pd_id if role == UserRole.REQUESTER else None,
            }
        )

    for account in accounts:
        await users.insert({**account, "password": verifier.hash(DEMO_PASSWORD)}, performed_by="system")

    logger.warning("Seeded demo users with the default password", count=len(accounts))
    return len(accounts)
