from datetime import date

import pytest

from timetravel.core.exceptions import RecordNotFoundError
from timetravel.entities.kinds import EntityKind
from timetravel.repositories.version_repository import VersionRepository
from timetravel.services.assembler import EntityAssembler


@pytest.mark.asyncio
async def test_assemble_composes_children_as_of_instant(session):
    repo = VersionRepository(session)
    assembler = EntityAssembler(session)

    async with session.begin():
        insured = await repo.append_version(EntityKind.INSURED, {"name": "Muppy"}, 100)
        await repo.append_version(
            EntityKind.EMPLOYEE,
            {"name": "X", "start_date": date(1974, 7, 24)},
            200,
            insured_id=insured.id,
        )
        await repo.append_version(EntityKind.ADDRESS, {"address": "911 Reno Street"}, 300, insured_id=insured.id)

        early = await assembler.assemble(insured.id, 150)
        late = await assembler.assemble(insured.id, 300)

    assert early.insured.values["name"] == "Muppy"
    assert early.employees == []
    assert early.addresses == []
    assert [e.values["name"] for e in late.employees] == ["X"]
    assert [a.values["address"] for a in late.addresses] == ["911 Reno Street"]
    assert late.as_of == 300


@pytest.mark.asyncio
async def test_assemble_before_creation_is_not_found(session):
    repo = VersionRepository(session)
    assembler = EntityAssembler(session)

    async with session.begin():
        insured = await repo.append_version(EntityKind.INSURED, {"name": "Muppy"}, 100)
        with pytest.raises(RecordNotFoundError):
            await assembler.assemble(insured.id, 99)
