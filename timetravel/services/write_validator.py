"""Write-path rules for creating, updating and deleting versioned entities.

Every accepted write appends exactly one version (or, for delete, removes an
identity with all its versions). Rejected writes leave the store untouched.
"""

from typing import Mapping, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from timetravel.core.exceptions import (
    InsuredImmutableError,
    InvalidInputError,
    NoOpUpdateError,
    RecordAlreadyExistsError,
    RecordNotFoundError,
)
from timetravel.entities.kinds import EntityKind, get_kind_spec
from timetravel.repositories.version_repository import VersionRepository
from timetravel.schemas.records import (
    AnyRecordInput,
    UpdateTarget,
    VersionRecord,
    canonical_fields,
    parse_fields,
    parse_target,
)
from timetravel.utils.logging import get_logger

LOGGER = get_logger(__name__)


class WritePathValidator:
    """Checks write invariants against the store and appends accepted versions."""

    def __init__(self, session: AsyncSession, versions: Optional[VersionRepository] = None):
        """Initialize the validator.

        Args:
            session: SQLAlchemy async session
            versions: Version store, built from the session when omitted
        """
        self.session = session
        self.versions = versions or VersionRepository(session)

    async def _require_parent(self, insured_id: int) -> None:
        if not await self.versions.insured_exists(insured_id):
            raise RecordNotFoundError(f"Insured with id {insured_id} does not exist")

    async def create(
        self,
        kind: EntityKind,
        record_input: AnyRecordInput,
        timestamp: int,
    ) -> VersionRecord:
        """Create a new entity with its first version.

        Args:
            kind: Entity kind
            record_input: Typed input for the kind
            timestamp: Record timestamp in epoch seconds

        Returns:
            VersionRecord: The first version of the new entity

        Raises:
            RecordNotFoundError: If the owning insured does not exist
            RecordAlreadyExistsError: If the natural key is already taken
        """
        spec = get_kind_spec(kind)
        if spec.is_root:
            return await self.versions.append_version(kind, record_input.values(), timestamp)

        await self._require_parent(record_input.insured_id)

        values = record_input.values()
        natural_key = {field: values[field] for field in spec.natural_key}
        existing = await self.versions.count_versions_for_root(
            kind, record_input.insured_id, natural_key=natural_key
        )
        if existing:
            LOGGER.info(
                f"Rejected duplicate {spec.label} create",
                extra={"insured_id": record_input.insured_id, "existing_versions": existing},
            )
            raise RecordAlreadyExistsError("Record already exists. Use 'update' to update")

        return await self.versions.append_version(
            kind, values, timestamp, insured_id=record_input.insured_id
        )

    async def _find_target(self, kind: EntityKind, target: UpdateTarget) -> Optional[VersionRecord]:
        if kind is EntityKind.ADDRESS:
            return await self.versions.find_latest_for_root(kind, target.insured_id)

        if target.employee_id is not None:
            try:
                current = await self.versions.get_latest_by_identity(kind, target.employee_id)
            except RecordNotFoundError:
                return None
            return current if current.insured_id == target.insured_id else None

        if not target.name:
            raise InvalidInputError("Please provide employeeId or name of the employee to update")

        for current in await self.versions.list_current(kind, insured_id=target.insured_id):
            if current.values["name"] == target.name:
                return current
        return None

    async def update(
        self,
        kind: EntityKind,
        field_map: Mapping[str, Optional[str]],
        timestamp: int,
    ) -> VersionRecord:
        """Append a new version to an existing child entity.

        Fields missing from ``field_map`` keep their current values. An
        explicit empty ``endDate`` clears the end date. An employee addressed
        by ``name`` is matched against current names only.

        Args:
            kind: Entity kind
            field_map: String-valued fields from the caller
            timestamp: Record timestamp in epoch seconds

        Returns:
            VersionRecord: The newly appended version

        Raises:
            InsuredImmutableError: If ``kind`` is insured
            InvalidInputError: If the target or merged fields are malformed
            RecordNotFoundError: If the owning insured or the target does not exist
            NoOpUpdateError: If nothing would change
        """
        spec = get_kind_spec(kind)
        if spec.is_root:
            raise InsuredImmutableError("Insured records cannot be updated")

        target = parse_target(kind, field_map)
        await self._require_parent(target.insured_id)

        current = await self._find_target(kind, target)
        if current is None:
            raise RecordNotFoundError(
                f"{spec.label} for insured {target.insured_id} does not exist. Use 'new' to create"
            )

        merged = current.to_input_map()
        merged.update(canonical_fields(kind, field_map))
        merged["insured_id"] = str(current.insured_id)
        updated = parse_fields(kind, merged)

        if updated.values() == current.values:
            raise NoOpUpdateError(f"No changes to {spec.label} {current.id}. Update not performed")

        version = await self.versions.append_version(
            kind,
            updated.values(),
            timestamp,
            insured_id=current.insured_id,
            identity_id=current.id,
        )
        LOGGER.info(
            f"Updated {spec.label}",
            extra={
                "identity_id": current.id,
                "previous_version_id": current.version_id,
                "version_id": version.version_id,
            },
        )
        return version

    async def delete(self, kind: EntityKind, identity_id: int) -> VersionRecord:
        """Hard-delete an entity and return the version that was current.

        Raises:
            RecordNotFoundError: If the entity does not exist
        """
        return await self.versions.delete_identity(kind, identity_id)
