import asyncio
from datetime import date

import pytest

from timetravel.core.exceptions import (
    DeadlineExceededError,
    InsuredImmutableError,
    InvalidInputError,
    NoOpUpdateError,
    RecordAlreadyExistsError,
    RecordNotFoundError,
)
from timetravel.entities.kinds import EntityKind
from timetravel.schemas.records import InsuredSnapshot
from timetravel.services.record_service import RecordService


class TestRecordService:
    """Behaviour of the record service across whole operations."""

    @pytest.mark.asyncio
    async def test_policy_numbers_follow_prior_insured_count(self, service, clock):
        for n, name in enumerate(["Kermit", "Piggy", "Muppy"]):
            created = await service.create(EntityKind.INSURED, {"name": name})
            clock.advance()
            assert created.values["policy_number"] == 1000 + n

        data = created.to_data()
        assert data["name"] == "Muppy"
        assert data["policyNumber"] == "1002"
        assert data["id"] == str(created.id)

    @pytest.mark.asyncio
    async def test_address_create_is_rejected_when_repeated(self, service, clock):
        insured = await service.create(EntityKind.INSURED, {"name": "Muppy"})
        fields = {"address": "911 Reno Street", "rootId": str(insured.id)}

        clock.advance()
        await service.create(EntityKind.ADDRESS, fields)
        clock.advance()
        with pytest.raises(RecordAlreadyExistsError):
            await service.create(EntityKind.ADDRESS, fields)

    @pytest.mark.asyncio
    async def test_employee_end_date_update_is_visible_only_after_it_happened(self, service, clock):
        insured = await service.create(EntityKind.INSURED, {"name": "Muppy"})
        clock.advance(10)
        employee = await service.create(
            EntityKind.EMPLOYEE,
            {"name": "X", "startDate": "1974-07-24", "endDate": "1994-01-14", "rootId": str(insured.id)},
        )
        before_update = clock.advance(10)
        after_update = clock.advance(10)
        await service.update(
            EntityKind.EMPLOYEE,
            {"insuredId": str(insured.id), "employeeId": str(employee.id), "endDate": "1999-01-14"},
        )

        old = await service.get_as_of(EntityKind.EMPLOYEE, insured.id, before_update)
        new = await service.get_as_of(EntityKind.EMPLOYEE, insured.id, after_update)

        assert [v.values["end_date"] for v in old] == [date(1994, 1, 14)]
        assert [v.values["end_date"] for v in new] == [date(1999, 1, 14)]

    @pytest.mark.asyncio
    async def test_as_of_reads_are_stable_after_later_writes(self, service, clock):
        insured = await service.create(EntityKind.INSURED, {"name": "Muppy"})
        clock.advance()
        await service.create(EntityKind.ADDRESS, {"address": "A", "insuredId": str(insured.id)})
        observed_at = clock.epoch

        first_read = await service.get_as_of(EntityKind.INSURED, insured.id, observed_at)
        clock.advance()
        await service.update(EntityKind.ADDRESS, {"address": "B", "insuredId": str(insured.id)})
        second_read = await service.get_as_of(EntityKind.INSURED, insured.id, observed_at)

        assert isinstance(first_read, InsuredSnapshot)
        assert first_read.to_data() == second_read.to_data()
        current = await service.get_as_of(EntityKind.INSURED, insured.id)
        assert [a.values["address"] for a in current.addresses] == ["B"]

    @pytest.mark.asyncio
    async def test_child_as_of_before_insured_existed_is_not_found(self, service, clock):
        insured = await service.create(EntityKind.INSURED, {"name": "Muppy"})

        with pytest.raises(RecordNotFoundError):
            await service.get_as_of(EntityKind.EMPLOYEE, insured.id, clock.epoch - 1)
        assert await service.get_as_of(EntityKind.EMPLOYEE, insured.id, clock.epoch) == []

    @pytest.mark.asyncio
    async def test_no_op_update_leaves_history_unchanged(self, service, clock):
        insured = await service.create(EntityKind.INSURED, {"name": "Muppy"})
        address = await service.create(EntityKind.ADDRESS, {"address": "A", "insuredId": str(insured.id)})
        clock.advance()

        with pytest.raises(NoOpUpdateError):
            await service.update(EntityKind.ADDRESS, {"address": "A", "insuredId": str(insured.id)})

        history = await service.history(EntityKind.ADDRESS, address.id)
        assert len(history) == 1

    @pytest.mark.asyncio
    async def test_insured_update_is_rejected(self, service):
        insured = await service.create(EntityKind.INSURED, {"name": "Muppy"})
        with pytest.raises(InsuredImmutableError):
            await service.update(EntityKind.INSURED, {"id": str(insured.id), "name": "Moppy"})

    @pytest.mark.asyncio
    async def test_delete_is_final(self, service, clock):
        insured = await service.create(EntityKind.INSURED, {"name": "Muppy"})
        await service.create(EntityKind.ADDRESS, {"address": "A", "insuredId": str(insured.id)})
        clock.advance()

        deleted = await service.delete(EntityKind.INSURED, insured.id)

        assert deleted.values["name"] == "Muppy"
        with pytest.raises(RecordNotFoundError):
            await service.get_latest(EntityKind.INSURED, insured.id)
        with pytest.raises(RecordNotFoundError):
            await service.get_as_of(EntityKind.INSURED, insured.id, clock.epoch)
        assert await service.list_current(EntityKind.ADDRESS) == []

    @pytest.mark.asyncio
    async def test_invalid_fields_are_rejected_before_the_store(self, service):
        with pytest.raises(InvalidInputError):
            await service.create(EntityKind.EMPLOYEE, {"name": "X", "insuredId": "1"})
        assert await service.list_current(EntityKind.EMPLOYEE) == []

    @pytest.mark.asyncio
    async def test_failed_operation_rolls_back_its_writes(self, service, monkeypatch):
        original_create = service.validator.create

        async def create_then_fail(*args, **kwargs):
            await original_create(*args, **kwargs)
            raise RecordAlreadyExistsError("forced failure")

        monkeypatch.setattr(service.validator, "create", create_then_fail)

        with pytest.raises(RecordAlreadyExistsError):
            await service.create(EntityKind.INSURED, {"name": "Muppy"})
        assert await service.list_current(EntityKind.INSURED) == []

    @pytest.mark.asyncio
    async def test_deadline_cancels_slow_operation(self, session, clock, monkeypatch):
        service = RecordService(session, clock=clock, timeout_seconds=0.05)

        async def slow_create(*args, **kwargs):
            await asyncio.sleep(1)

        monkeypatch.setattr(service.validator, "create", slow_create)

        with pytest.raises(DeadlineExceededError, match="did not finish"):
            await service.create(EntityKind.INSURED, {"name": "Muppy"})
        assert await service.list_current(EntityKind.INSURED) == []
