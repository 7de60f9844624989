"""Unit tests for the asyncpg repositories against mocked connections."""

import asyncio
import json

import asyncpg
import pytest

from tms_api.exceptions import DuplicateEntity
from tms_api.exceptions import EntityInUse
from tms_api.exceptions import StorageError
from tms_api.workflow.db.repository_audit import AuditTrailRepository
from tms_api.workflow.db.repository_base import storage_errors
from tms_api.workflow.db.repository_driver import DriverRepository
from tms_api.workflow.db.repository_request import RequestRepository
from tms_api.workflow.db.repository_request import TransitionConflict
from tms_api.workflow.db.repository_user import UserRepository
from tms_api.workflow.enums import AuditAction


class TestStorageErrors:
    """Tests for translating database failures."""

    @pytest.mark.asyncio
    async def test_unique_violation_with_message(self):
        with pytest.raises(DuplicateEntity) as exc_info:
            async with storage_errors("insert drivers", duplicate_message="Driver exists"):
                raise asyncpg.UniqueViolationError("duplicate key")

        assert exc_info.value.detail == "Driver exists"

    @pytest.mark.asyncio
    async def test_unique_violation_without_message(self):
        with pytest.raises(StorageError):
            async with storage_errors("insert drivers"):
                raise asyncpg.UniqueViolationError("duplicate key")

    @pytest.mark.asyncio
    async def test_foreign_key_violation_with_message(self):
        with pytest.raises(EntityInUse):
            async with storage_errors("delete drivers", in_use_message="Driver is assigned"):
                raise asyncpg.ForeignKeyViolationError("still referenced")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [
            asyncpg.PostgresError("boom"),
            asyncpg.InterfaceError("closed"),
            ConnectionRefusedError("refused"),
            asyncio.TimeoutError(),
        ],
        ids=["postgres", "interface", "connection", "timeout"],
    )
    async def test_other_failures(self, error):
        with pytest.raises(StorageError) as exc_info:
            async with storage_errors("read users"):
                raise error

        assert "read users" in exc_info.value.detail

    @pytest.mark.asyncio
    async def test_domain_errors_pass_through(self):
        with pytest.raises(TransitionConflict):
            async with storage_errors("forward transport_requests"):
                raise TransitionConflict("Approved")


class TestBaseRepository:
    """Tests for the shared CRUD methods."""

    @pytest.mark.asyncio
    async def test_get(self, mock_pool, mock_conn):
        mock_conn.fetchrow.return_value = {"id": "D1", "name": "Sunil", "contact": "077"}

        row = await DriverRepository(mock_pool).get("D1")

        assert row["name"] == "Sunil"
        sql, driver_id = mock_conn.fetchrow.call_args.args
        assert "FROM tms.drivers" in sql
        assert driver_id == "D1"

    @pytest.mark.asyncio
    async def test_get_missing(self, mock_pool, mock_conn):
        assert await DriverRepository(mock_pool).get("D404") is None

    @pytest.mark.asyncio
    async def test_insert_writes_audit_in_transaction(self, mock_pool, mock_conn):
        mock_conn.fetchrow.return_value = {"id": "D9", "name": "Nimal", "contact": "071"}

        row = await DriverRepository(mock_pool).insert(
            {"id": "D9", "name": "Nimal", "contact": "071"}, performed_by="u-manager"
        )

        assert row["id"] == "D9"
        mock_conn.transaction.assert_called_once()
        audit_sql, entity_type, entity_id, action, performed_by, old_values, new_values = (
            mock_conn.execute.call_args.args
        )
        assert "tms.audit_trail" in audit_sql
        assert (entity_type, entity_id, action, performed_by) == ("drivers", "D9", "CREATED", "u-manager")
        assert old_values is None
        assert json.loads(new_values)["name"] == "Nimal"

    @pytest.mark.asyncio
    async def test_password_never_audited(self, mock_pool, mock_conn):
        mock_conn.fetchrow.return_value = {"id": "u-1", "username": "x", "password": "secret"}

        await UserRepository(mock_pool).insert({"id": "u-1", "username": "x", "password": "secret"}, "u-manager")

        new_values = json.loads(mock_conn.execute.call_args.args[6])
        assert "password" not in new_values

    @pytest.mark.asyncio
    async def test_password_only_update_audits_no_values(self, mock_pool, mock_conn):
        mock_conn.fetchrow.side_effect = [
            {"id": "u-1", "username": "x", "password": "old"},
            {"id": "u-1", "username": "x", "password": "new"},
        ]

        await UserRepository(mock_pool).update(
            "u-1", {"password": "new"}, performed_by="u-1", action=AuditAction.PASSWORD_CHANGED
        )

        args = mock_conn.execute.call_args.args
        assert args[3] == "PASSWORD_CHANGED"
        assert args[5] is None
        assert args[6] is None

    @pytest.mark.asyncio
    async def test_update_missing_row(self, mock_pool, mock_conn):
        result = await DriverRepository(mock_pool).update("D404", {"name": "X"}, performed_by="u-manager")

        assert result is None
        assert mock_conn.fetchrow.await_count == 1
        mock_conn.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_update_records_old_values(self, mock_pool, mock_conn):
        mock_conn.fetchrow.side_effect = [
            {"id": "D1", "name": "Sunil", "contact": "077"},
            {"id": "D1", "name": "Sunil P", "contact": "077"},
        ]

        row = await DriverRepository(mock_pool).update("D1", {"name": "Sunil P"}, performed_by="u-manager")

        assert row["name"] == "Sunil P"
        args = mock_conn.execute.call_args.args
        assert args[3] == "UPDATED"
        assert json.loads(args[5]) == {"name": "Sunil"}
        assert json.loads(args[6]) == {"name": "Sunil P"}

    @pytest.mark.asyncio
    async def test_delete_missing_row(self, mock_pool, mock_conn):
        assert await DriverRepository(mock_pool).delete("D404", performed_by="u-manager") is False

    @pytest.mark.asyncio
    async def test_delete_referenced_row(self, mock_pool, mock_conn):
        mock_conn.fetchrow.side_effect = asyncpg.ForeignKeyViolationError("violates foreign key")

        with pytest.raises(EntityInUse):
            await DriverRepository(mock_pool).delete("D1", performed_by="u-manager", in_use_message="assigned")

    @pytest.mark.asyncio
    async def test_audit_failure_aborts_write(self, mock_pool, mock_conn):
        mock_conn.fetchrow.return_value = {"id": "D9", "name": "Nimal", "contact": "071"}
        mock_conn.execute.side_effect = asyncpg.PostgresError("audit table missing")

        with pytest.raises(StorageError):
            await DriverRepository(mock_pool).insert({"id": "D9", "name": "Nimal", "contact": "071"}, "u-manager")

        # the transaction context saw the exception, so it rolled back
        assert mock_conn.transaction_context.exits == [asyncpg.PostgresError]


class TestRequestRepository:
    """Tests for RequestRepository."""

    @pytest.mark.asyncio
    async def test_create_serializes_officials(self, mock_pool, mock_conn):
        mock_conn.fetchrow.return_value = {"id": 12}

        request_id = await RequestRepository(mock_pool).create(
            {"employee_number": "E1", "officials": [{"name": "A", "employee_number": "E2"}]}, performed_by="u-user"
        )

        assert request_id == 12
        insert_args = mock_conn.fetchrow.call_args.args
        assert json.loads(insert_args[2]) == [{"name": "A", "employee_number": "E2"}]

    @pytest.mark.asyncio
    async def test_list_joins_assignment(self, mock_pool, mock_conn):
        await RequestRepository(mock_pool).list_all()

        sql = mock_conn.fetch.call_args.args[0]
        assert "LEFT JOIN tms.drivers" in sql
        assert "ORDER BY tr.request_generated_date DESC, tr.id DESC" in sql

    @pytest.mark.asyncio
    async def test_count_referencing_rejects_other_columns(self, mock_pool):
        with pytest.raises(ValueError):
            await RequestRepository(mock_pool).count_referencing("name; DROP TABLE", "x")

    @pytest.mark.asyncio
    async def test_apply_transition_missing_request(self, mock_pool, mock_conn):
        result = await RequestRepository(mock_pool).apply_transition(
            5, {"status": "Approved"}, ["Forwarded"], "u-manager", AuditAction.APPROVED
        )

        assert result is None
        mock_conn.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_apply_transition_conflict(self, mock_pool, mock_conn):
        mock_conn.fetchrow.return_value = {"id": 5, "status": "Disapproved"}

        with pytest.raises(TransitionConflict) as exc_info:
            await RequestRepository(mock_pool).apply_transition(
                5, {"status": "Approved"}, ["Forwarded"], "u-manager", AuditAction.APPROVED
            )

        assert exc_info.value.current_status == "Disapproved"
        mock_conn.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_apply_transition_updates_and_audits(self, mock_pool, mock_conn):
        mock_conn.fetchrow.side_effect = [
            {"id": 5, "status": "Pending", "driver_id": None, "vehicle_id": None},
            {"id": 5, "status": "Forwarded", "driver_id": "D1", "vehicle_id": "V1", "driver_name": "Sunil"},
        ]
        fields = {"driver_id": "D1", "vehicle_id": "V1", "status": "Forwarded"}

        row = await RequestRepository(mock_pool).apply_transition(
            5, fields, ["Pending", "Recommended"], "u-supervisor", AuditAction.FORWARDED
        )

        assert row["driver_name"] == "Sunil"
        lock_sql = mock_conn.fetchrow.call_args_list[0].args[0]
        assert "FOR UPDATE" in lock_sql
        update_call, audit_call = mock_conn.execute.call_args_list
        assert update_call.args[1:] == (5, "D1", "V1", "Forwarded")
        assert audit_call.args[3] == "FORWARDED"
        assert json.loads(audit_call.args[5]) == {"driver_id": None, "vehicle_id": None, "status": "Pending"}


class TestAuditTrailRepository:
    @pytest.mark.asyncio
    async def test_entity_id_compared_as_text(self, mock_pool, mock_conn):
        mock_conn.fetch.return_value = [{"audit_id": 1}]

        rows = await AuditTrailRepository(mock_pool).list_for_entity("transport_requests", 5)

        assert rows == [{"audit_id": 1}]
        assert mock_conn.fetch.call_args.args[1:] == ("transport_requests", "5")
