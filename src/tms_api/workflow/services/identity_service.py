"""
Identity Service

User accounts, authentication and password management. Stored credentials are produced
and checked by the configured ``CredentialVerifier`` and never leave this service.
"""

from typing import Any
from typing import Dict
from typing import List
from typing import Optional
from uuid import uuid4

from loguru import logger

from tms_api.auth.credentials import CredentialVerifier
from tms_api.exceptions import CredentialError
from tms_api.exceptions import DuplicateEntity
from tms_api.exceptions import EntityInUse
from tms_api.exceptions import NotFound
from tms_api.exceptions import ValidationError
from tms_api.workflow.db.repository_request import RequestRepository
from tms_api.workflow.db.repository_user import UserRepository
from tms_api.workflow.enums import AuditAction
from tms_api.workflow.enums import UserRole
from tms_api.workflow.models.user import User
from tms_api.workflow.models.user import UserPayload

MIN_PASSWORD_LENGTH = 3


def _to_user(row: Dict[str, Any]) -> User:
    return User.model_validate({k: v for k, v in row.items() if k != "password"})


class IdentityService:
    """User management over the users table."""

    def __init__(self, users: UserRepository, requests: RequestRepository, verifier: CredentialVerifier):
        self.users = users
        self.requests = requests
        self.verifier = verifier

    async def authenticate(self, username: str, password: str) -> Optional[User]:
        """Return the user whose credentials match, or None."""
        row = await self.users.get_by_username(username.strip())
        if row is None or not self.verifier.verify(password, row["password"]):
            logger.warning("Login failed", username=username)
            return None
        logger.info("Login succeeded", user_id=row["id"], role=row["role"])
        return _to_user(row)

    async def list_users(self) -> List[User]:
        return [_to_user(row) for row in await self.users.list_all(order_by="name")]

    async def list_recommenders(self) -> List[User]:
        """Users a requester can be pinned to."""
        return [user for user in await self.list_users() if user.role == UserRole.RECOMMENDER]

    async def get_user(self, user_id: str) -> User:
        row = await self.users.get(user_id)
        if row is None:
            raise NotFound("User", user_id)
        return _to_user(row)

    async def create_user(self, payload: UserPayload, performed_by: str) -> User:
        """
        Create a user.

        Raises:
            ValidationError: Missing password, or a requester pinned to something that is not a recommender
            DuplicateEntity: Username or employee number already taken
        """
        if not payload.password:
            raise ValidationError("Password is required", field="password")
        await self._check_unique(payload)
        await self._check_pinning(payload)

        row = await self.users.insert(
            {
                "id": str(uuid4()),
                "employee_number": payload.employee_number,
                "name": payload.name,
                "username": payload.username,
                "password": self.verifier.hash(payload.password),
                "role": payload.role.value,
                "pd_id": payload.pd_id,
            },
            performed_by=performed_by,
            duplicate_message="Username or employee number already exists",
        )
        logger.info("User created", user_id=row["id"], role=payload.role.value)
        return _to_user(row)

    async def update_user(self, user_id: str, payload: UserPayload, performed_by: str) -> User:
        """
        Update a user. The password is only replaced when one is supplied.

        Raises:
            NotFound: Unknown user
            ValidationError: Invalid pinning, or a recommender with pinned requesters changing role
            DuplicateEntity: Username or employee number taken by someone else
        """
        existing = await self.get_user(user_id)
        await self._check_unique(payload, exclude_id=user_id)
        await self._check_pinning(payload, exclude_id=user_id)

        if existing.role == UserRole.RECOMMENDER and payload.role != UserRole.RECOMMENDER:
            if await self.users.count_pinned_requesters(user_id):
                raise ValidationError("Recommender still has pinned requesters", field="role")

        fields = {
            "employee_number": payload.employee_number,
            "name": payload.name,
            "username": payload.username,
            "role": payload.role.value,
            "pd_id": payload.pd_id,
        }
        if payload.password:
            fields["password"] = self.verifier.hash(payload.password)

        row = await self.users.update(
            user_id,
            fields,
            performed_by=performed_by,
            duplicate_message="Username or employee number already exists",
        )
        if row is None:
            raise NotFound("User", user_id)
        logger.info("User updated", user_id=user_id)
        return _to_user(row)

    async def delete_user(self, user_id: str, performed_by: str) -> None:
        """
        Delete a user.

        Raises:
            NotFound: Unknown user
            EntityInUse: A recommender still has pinned requesters or requests
        """
        user = await self.get_user(user_id)
        if user.role == UserRole.RECOMMENDER:
            if await self.users.count_pinned_requesters(user_id):
                raise EntityInUse("Recommender still has pinned requesters")
            if await self.requests.count_referencing("pd_id", user_id):
                raise EntityInUse("Recommender is still referenced by requests")

        deleted = await self.users.delete(
            user_id,
            performed_by=performed_by,
            in_use_message="User is still referenced",
        )
        if not deleted:
            raise NotFound("User", user_id)
        logger.info("User deleted", user_id=user_id)

    async def reset_password(self, user_id: str, performed_by: str) -> str:
        """
        Reset a password to the employee number repeated three times.

        Returns:
            The new password, for the administrator to hand over
        """
        user = await self.get_user(user_id)
        new_password = user.employee_number * 3
        await self.users.set_password(
            user_id, self.verifier.hash(new_password), performed_by, AuditAction.PASSWORD_RESET
        )
        logger.info("Password reset", user_id=user_id)
        return new_password

    async def change_password(self, user_id: str, old_password: str, new_password: str) -> None:
        """
        Change a user's own password.

        Raises:
            NotFound: Unknown user
            CredentialError: ``old_password`` does not verify
            ValidationError: ``new_password`` is too short
        """
        row = await self.users.get(user_id)
        if row is None:
            raise NotFound("User", user_id)
        if not self.verifier.verify(old_password, row["password"]):
            logger.warning("Password change rejected", user_id=user_id)
            raise CredentialError("Incorrect old password")
        if len(new_password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"New password must be at least {MIN_PASSWORD_LENGTH} characters", field="new_password"
            )

        await self.users.set_password(user_id, self.verifier.hash(new_password), user_id, AuditAction.PASSWORD_CHANGED)
        logger.info("Password changed", user_id=user_id)

    async def _check_unique(self, payload: UserPayload, exclude_id: Optional[str] = None) -> None:
        by_username = await self.users.get_by_username(payload.username)
        if by_username and by_username["id"] != exclude_id:
            raise DuplicateEntity(f"Username already exists: {payload.username}", field="username")
        by_number = await self.users.get_by_employee_number(payload.employee_number)
        if by_number and by_number["id"] != exclude_id:
            raise DuplicateEntity(
                f"Employee number already exists: {payload.employee_number}", field="employee_number"
            )

    async def _check_pinning(self, payload: UserPayload, exclude_id: Optional[str] = None) -> None:
        if payload.role != UserRole.REQUESTER:
            return
        if payload.pd_id == exclude_id:
            raise ValidationError("A user cannot be pinned to themselves", field="pd_id")
        recommender = await self.users.get(payload.pd_id)
        if recommender is None or recommender["role"] != UserRole.RECOMMENDER.value:
            raise ValidationError(f"pd_id does not refer to a recommender: {payload.pd_id}", field="pd_id")
