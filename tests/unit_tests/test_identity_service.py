"""Unit tests for IdentityService."""

import pytest

from tms_api.auth.credentials import Pbkdf2CredentialVerifier
from tms_api.exceptions import CredentialError
from tms_api.exceptions import DuplicateEntity
from tms_api.exceptions import EntityInUse
from tms_api.exceptions import NotFound
from tms_api.exceptions import ValidationError
from tms_api.workflow.db.seed import DEMO_PASSWORD
from tms_api.workflow.db.seed import seed_demo_users
from tms_api.workflow.enums import UserRole
from tms_api.workflow.models.user import UserPayload
from tms_api.workflow.services.identity_service import IdentityService


def payload(**overrides) -> UserPayload:
    values = {
        "employee_number": "2001",
        "name": "New Person",
        "username": "newperson",
        "password": "secret",
        "role": "User",
        "pd_id": "u-pd",
    }
    values.update(overrides)
    return UserPayload(**values)


class TestAuthenticate:
    """Tests for authenticate."""

    @pytest.mark.asyncio
    async def test_valid_credentials(self, identity_service):
        user = await identity_service.authenticate("manager", "manager")

        assert user.id == "u-manager"
        assert user.role == UserRole.APPROVER

    @pytest.mark.asyncio
    async def test_username_is_trimmed(self, identity_service):
        assert (await identity_service.authenticate("  pduser ", "pduser")).id == "u-pd"

    @pytest.mark.asyncio
    async def test_wrong_password(self, identity_service):
        assert await identity_service.authenticate("manager", "nope") is None

    @pytest.mark.asyncio
    async def test_unknown_user(self, identity_service):
        assert await identity_service.authenticate("ghost", "ghost") is None


class TestUserManagement:
    """Tests for create, update and delete."""

    @pytest.mark.asyncio
    async def test_list_users_sorted_by_name(self, identity_service):
        names = [user.name for user in await identity_service.list_users()]

        assert names == sorted(names)
        assert len(names) == 6

    @pytest.mark.asyncio
    async def test_list_recommenders(self, identity_service):
        recommenders = await identity_service.list_recommenders()

        assert {user.id for user in recommenders} == {"u-pd", "u-pd2"}

    @pytest.mark.asyncio
    async def test_create_user(self, identity_service, seeded_store):
        user = await identity_service.create_user(payload(), performed_by="u-manager")

        assert user.username == "newperson"
        assert user.pd_id == "u-pd"
        assert seeded_store.tables["users"][user.id]["password"] == "secret"
        created_entry = seeded_store.audit[-1]
        assert created_entry["action"] == "CREATED"
        assert "password" not in created_entry["new_values"]

    @pytest.mark.asyncio
    async def test_create_requires_password(self, identity_service):
        with pytest.raises(ValidationError) as exc_info:
            await identity_service.create_user(payload(password=None), performed_by="u-manager")

        assert exc_info.value.field == "password"

    @pytest.mark.asyncio
    async def test_duplicate_username(self, identity_service):
        with pytest.raises(DuplicateEntity) as exc_info:
            await identity_service.create_user(payload(username="manager"), performed_by="u-manager")

        assert exc_info.value.field == "username"

    @pytest.mark.asyncio
    async def test_duplicate_employee_number(self, identity_service):
        with pytest.raises(DuplicateEntity) as exc_info:
            await identity_service.create_user(payload(employee_number="E1"), performed_by="u-manager")

        assert exc_info.value.field == "employee_number"

    @pytest.mark.asyncio
    async def test_requester_must_be_pinned_to_recommender(self, identity_service):
        with pytest.raises(ValidationError) as exc_info:
            await identity_service.create_user(payload(pd_id="u-supervisor"), performed_by="u-manager")

        assert exc_info.value.field == "pd_id"

    @pytest.mark.asyncio
    async def test_update_keeps_password_when_omitted(self, identity_service, seeded_store):
        updated = await identity_service.update_user(
            "u-user",
            payload(employee_number="E1", name="Renamed", username="user", password=None),
            performed_by="u-manager",
        )

        assert updated.name == "Renamed"
        assert seeded_store.tables["users"]["u-user"]["password"] == "user"

    @pytest.mark.asyncio
    async def test_update_unknown_user(self, identity_service):
        with pytest.raises(NotFound):
            await identity_service.update_user("ghost", payload(), performed_by="u-manager")

    @pytest.mark.asyncio
    async def test_update_cannot_take_other_username(self, identity_service):
        with pytest.raises(DuplicateEntity):
            await identity_service.update_user(
                "u-user", payload(employee_number="E1", username="pduser"), performed_by="u-manager"
            )

    @pytest.mark.asyncio
    async def test_recommender_with_requesters_keeps_role(self, identity_service):
        with pytest.raises(ValidationError) as exc_info:
            await identity_service.update_user(
                "u-pd",
                payload(employee_number="1004", name="PD User", username="pduser", role="Supervisor", pd_id=None),
                performed_by="u-manager",
            )

        assert exc_info.value.field == "role"

    @pytest.mark.asyncio
    async def test_delete_recommender_with_requesters(self, identity_service):
        with pytest.raises(EntityInUse):
            await identity_service.delete_user("u-pd", performed_by="u-manager")

    @pytest.mark.asyncio
    async def test_delete_user(self, identity_service, seeded_store):
        await identity_service.delete_user("u-supervisor", performed_by="u-manager")

        assert "u-supervisor" not in seeded_store.tables["users"]
        with pytest.raises(NotFound):
            await identity_service.get_user("u-supervisor")


class TestPasswords:
    """Tests for reset_password and change_password."""

    @pytest.mark.asyncio
    async def test_reset_to_employee_number_three_times(self, identity_service):
        new_password = await identity_service.reset_password("u-user", performed_by="u-manager")

        assert new_password == "E1E1E1"
        assert await identity_service.authenticate("user", "E1E1E1") is not None

    @pytest.mark.asyncio
    async def test_reset_unknown_user(self, identity_service):
        with pytest.raises(NotFound):
            await identity_service.reset_password("ghost", performed_by="u-manager")

    @pytest.mark.asyncio
    async def test_change_password(self, identity_service, seeded_store):
        await identity_service.change_password("u-pd", "pduser", "better-one")

        assert await identity_service.authenticate("pduser", "better-one") is not None
        assert seeded_store.audit[-1]["action"] == "PASSWORD_CHANGED"
        assert seeded_store.audit[-1]["new_values"] is None

    @pytest.mark.asyncio
    async def test_change_password_wrong_old(self, identity_service):
        with pytest.raises(CredentialError):
            await identity_service.change_password("u-pd", "wrong", "better-one")

    @pytest.mark.asyncio
    async def test_change_password_too_short(self, identity_service):
        with pytest.raises(ValidationError):
            await identity_service.change_password("u-pd", "pduser", "ab")

    @pytest.mark.asyncio
    async def test_hashed_scheme(self, seeded_store, user_repo, request_repo):
        service = IdentityService(user_repo, request_repo, Pbkdf2CredentialVerifier(iterations=1000))

        user = await service.create_user(payload(), performed_by="u-manager")

        stored = seeded_store.tables["users"][user.id]["password"]
        assert stored.startswith("pbkdf2_sha256$")
        assert await service.authenticate("newperson", "secret") is not None


class TestSeed:
    """Tests for seed_demo_users."""

    @pytest.mark.asyncio
    async def test_seeds_empty_table(self, store, user_repo, verifier):
        created = await seed_demo_users(user_repo, verifier)

        assert created == 4
        rows = list(store.tables["users"].values())
        pd = next(row for row in rows if row["role"] == "PD")
        requester = next(row for row in rows if row["role"] == "User")
        assert requester["pd_id"] == pd["id"]
        assert all(row["password"] == DEMO_PASSWORD for row in rows)

    @pytest.mark.asyncio
    async def test_skips_when_users_exist(self, seeded_store, user_repo, verifier):
        assert await seed_demo_users(user_repo, verifier) == 0
        assert len(seeded_store.tables["users"]) == 6

    @pytest.mark.asyncio
    async def test_seeded_accounts_pass_user_validation(self, store, user_repo, verifier):
        """Test every demo account can be edited through the user form unchanged."""
        await seed_demo_users(user_repo, verifier)

        for row in store.tables["users"].values():
            fields = {key: row[key] for key in ("employee_number", "name", "username", "role", "pd_id")}
            assert UserPayload(**fields).username == row["username"]
