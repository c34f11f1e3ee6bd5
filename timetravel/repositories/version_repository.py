"""Version store: append-only persistence of entity identities and versions.

Statements are built from the ``KindSpec`` of the kind being read or written;
no table or column name is ever spliced into SQL text.
"""

from datetime import date
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import ColumnElement, Select, delete, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from timetravel.core.exceptions import (
    DatabaseError,
    RecordAlreadyExistsError,
    RecordNotFoundError,
)
from timetravel.database.models import Insured
from timetravel.entities.kinds import EntityKind, KindSpec, get_kind_spec
from timetravel.repositories.base_repository import BaseRepository
from timetravel.schemas.records import DATE_FORMAT, VersionRecord, parse_date
from timetravel.utils.logging import get_logger

LOGGER = get_logger(__name__)

FIRST_POLICY_NUMBER = 1000


def identity_column(spec: KindSpec) -> ColumnElement:
    """Column identifying which entity a version row belongs to."""
    if spec.is_root:
        return spec.record_model.id
    return getattr(spec.record_model, spec.identity_fk)


def owner_column(spec: KindSpec) -> ColumnElement:
    """Column holding the owning insured's id."""
    if spec.is_root:
        return spec.record_model.id
    return spec.identity_model.insured_id


def versions_query(spec: KindSpec) -> Select:
    """Select version rows of a kind together with their owning insured id."""
    query = select(spec.record_model, owner_column(spec).label("owner_id"))
    if not spec.is_root:
        query = query.join(
            spec.identity_model, identity_column(spec) == spec.identity_model.id
        )
    return query


def latest_first(spec: KindSpec) -> tuple:
    """Ordering that puts the latest version first; insertion order breaks timestamp ties."""
    return (spec.record_model.record_timestamp.desc(), spec.record_model.id.desc())


def latest_per_group(
    spec: KindSpec,
    partition: Sequence[ColumnElement],
    conditions: Sequence[ColumnElement] = (),
) -> Select:
    """Select the latest version in each partition among rows matching ``conditions``.

    Rows are ranked with ``ROW_NUMBER()`` over the partition, latest first,
    and only rank 1 is kept. The result yields ``(record, owner_id)`` rows.
    """
    rank = (
        func.row_number()
        .over(partition_by=list(partition), order_by=latest_first(spec))
        .label("version_rank")
    )
    query = versions_query(spec).add_columns(rank)
    if conditions:
        query = query.where(*conditions)
    ranked = query.subquery("ranked_versions")
    version = aliased(spec.record_model, ranked)
    identity = ranked.c.id if spec.is_root else ranked.c[spec.identity_fk]
    return (
        select(version, ranked.c.owner_id)
        .where(ranked.c.version_rank == 1)
        .order_by(ranked.c.owner_id, identity, ranked.c.id)
    )


def encode_values(spec: KindSpec, values: Dict[str, Any]) -> Dict[str, Any]:
    """Convert typed values into column values."""
    encoded = {}
    for field in spec.value_fields:
        if field not in values:
            continue
        value = values[field]
        if field in spec.date_fields and isinstance(value, date):
            value = value.strftime(DATE_FORMAT)
        encoded[field] = value
    return encoded


def to_version_record(spec: KindSpec, row: Any, owner_id: int) -> VersionRecord:
    """Build a ``VersionRecord`` from a version row."""
    values = {}
    for field in spec.value_fields:
        value = getattr(row, field)
        if field in spec.date_fields:
            value = parse_date(value)
        values[field] = value

    return VersionRecord(
        kind=spec.kind,
        id=row.id if spec.is_root else getattr(row, spec.identity_fk),
        insured_id=owner_id,
        version_id=row.id,
        record_timestamp=row.record_timestamp,
        values=values,
    )


class VersionRepository:
    """Repository for versioned entities of every kind.

    Provides identity lookups, history reads, version appends and hard
    deletes. All methods run inside the caller's transaction.
    """

    def __init__(self, session: AsyncSession):
        """Initialize the version repository.

        Args:
            session: SQLAlchemy async session
        """
        self.session = session
        self.insureds = BaseRepository(session, Insured)

    def _identities(self, spec: KindSpec) -> BaseRepository:
        return BaseRepository(self.session, spec.identity_model)

    def _records(self, spec: KindSpec) -> BaseRepository:
        return BaseRepository(self.session, spec.record_model)

    async def insured_exists(self, insured_id: int) -> bool:
        """Check whether an insured identity currently exists."""
        return await self.insureds.get_by_id(insured_id) is not None

    async def get_latest_by_identity(self, kind: EntityKind, identity_id: int) -> VersionRecord:
        """Get the chronologically latest version of an entity.

        Args:
            kind: Entity kind
            identity_id: Stable identity of the entity

        Returns:
            VersionRecord: Latest version

        Raises:
            RecordNotFoundError: If the entity does not exist
        """
        spec = get_kind_spec(kind)
        query = (
            versions_query(spec)
            .where(identity_column(spec) == identity_id)
            .order_by(*latest_first(spec))
            .limit(1)
        )
        result = await self.session.execute(query)
        row = result.first()
        if row is None:
            raise RecordNotFoundError(f"{spec.label} with id {identity_id} does not exist")
        return to_version_record(spec, row[0], row.owner_id)

    async def list_versions(self, kind: EntityKind, identity_id: int) -> List[VersionRecord]:
        """Get every version of an entity, oldest first.

        Raises:
            RecordNotFoundError: If the entity has no versions
        """
        spec = get_kind_spec(kind)
        query = (
            versions_query(spec)
            .where(identity_column(spec) == identity_id)
            .order_by(spec.record_model.record_timestamp, spec.record_model.id)
        )
        result = await self.session.execute(query)
        versions = [to_version_record(spec, row[0], row.owner_id) for row in result.all()]
        if not versions:
            raise RecordNotFoundError(f"{spec.label} with id {identity_id} does not exist")
        return versions

    async def list_current(
        self, kind: EntityKind, insured_id: Optional[int] = None
    ) -> List[VersionRecord]:
        """Get the latest version of every existing entity of a kind.

        Args:
            kind: Entity kind
            insured_id: Only include entities owned by this insured
        """
        spec = get_kind_spec(kind)
        conditions = [] if insured_id is None else [owner_column(spec) == insured_id]
        result = await self.session.execute(
            latest_per_group(spec, [identity_column(spec)], conditions)
        )
        return [to_version_record(spec, row[0], row.owner_id) for row in result.all()]

    async def count_versions_for_root(
        self,
        kind: EntityKind,
        insured_id: int,
        natural_key: Optional[Dict[str, Any]] = None,
    ) -> int:
        """Count versions of a child kind owned by an insured.

        Args:
            kind: Child entity kind
            insured_id: Owning insured
            natural_key: Optional column values every counted version must match

        Returns:
            Number of matching version rows
        """
        spec = get_kind_spec(kind)
        query = (
            select(func.count())
            .select_from(spec.record_model)
            .join(spec.identity_model, identity_column(spec) == spec.identity_model.id)
            .where(owner_column(spec) == insured_id)
        )
        for field, value in encode_values(spec, natural_key or {}).items():
            query = query.where(getattr(spec.record_model, field) == value)
        result = await self.session.execute(query)
        return result.scalar_one()

    async def find_latest_for_root(
        self,
        kind: EntityKind,
        insured_id: int,
        natural_key: Optional[Dict[str, Any]] = None,
    ) -> Optional[VersionRecord]:
        """Find the latest version of a child kind owned by an insured.

        Args:
            kind: Child entity kind
            insured_id: Owning insured
            natural_key: Optional column values the version must match

        Returns:
            The matching version, or None
        """
        spec = get_kind_spec(kind)
        query = versions_query(spec).where(owner_column(spec) == insured_id)
        for field, value in encode_values(spec, natural_key or {}).items():
            query = query.where(getattr(spec.record_model, field) == value)
        result = await self.session.execute(query.order_by(*latest_first(spec)).limit(1))
        row = result.first()
        if row is None:
            return None
        return to_version_record(spec, row[0], row.owner_id)

    async def next_policy_number(self) -> int:
        """Next policy number: one past the current maximum, or the first one."""
        result = await self.session.execute(select(func.max(Insured.policy_number)))
        current_max = result.scalar_one_or_none()
        if current_max is None:
            return FIRST_POLICY_NUMBER
        return current_max + 1

    async def append_version(
        self,
        kind: EntityKind,
        values: Dict[str, Any],
        timestamp: int,
        insured_id: Optional[int] = None,
        identity_id: Optional[int] = None,
    ) -> VersionRecord:
        """Insert a new version row.

        For an insured this creates the identity row and assigns its policy
        number. For a child kind without ``identity_id`` the identity row is
        created first.

        Args:
            kind: Entity kind
            values: Typed version values
            timestamp: Record timestamp in epoch seconds
            insured_id: Owning insured, required for child kinds
            identity_id: Existing identity to add a version to

        Returns:
            VersionRecord: The stored version

        Raises:
            RecordAlreadyExistsError: If a uniqueness constraint rejects a child row
            DatabaseError: If the assigned policy number is already taken
        """
        spec = get_kind_spec(kind)
        columns = encode_values(spec, values)

        try:
            if spec.is_root:
                columns["policy_number"] = await self.next_policy_number()
                row = await self.insureds.add(record_timestamp=timestamp, **columns)
                owner_id = row.id
            else:
                if identity_id is None:
                    identity_columns = {"insured_id": insured_id}
                    for field in spec.natural_key:
                        identity_columns[field] = columns[field]
                    identity = await self._identities(spec).add(**identity_columns)
                    identity_id = identity.id
                row = await self._records(spec).add(
                    record_timestamp=timestamp,
                    **{spec.identity_fk: identity_id},
                    **columns,
                )
                owner_id = insured_id
        except IntegrityError as e:
            if spec.is_root:
                LOGGER.error(
                    "Policy number collision while creating insured",
                    extra={"policy_number": columns.get("policy_number"), "error": str(e.orig)},
                )
                raise DatabaseError(
                    "Policy number was assigned concurrently. Retry the create", original_error=e
                ) from e
            LOGGER.warning(
                f"Uniqueness constraint rejected new {spec.label} version",
                extra={"insured_id": insured_id, "identity_id": identity_id, "error": str(e.orig)},
            )
            raise RecordAlreadyExistsError(
                "Record already exists. Use 'update' to update", original_error=e
            ) from e

        version = to_version_record(spec, row, owner_id)
        LOGGER.info(
            f"Appended {spec.label} version",
            extra={
                "identity_id": version.id,
                "version_id": version.version_id,
                "record_timestamp": timestamp,
            },
        )
        return version

    async def delete_identity(self, kind: EntityKind, identity_id: int) -> VersionRecord:
        """Remove an entity and all of its versions.

        Deleting an insured also removes its employees and addresses.

        Returns:
            VersionRecord: The version that was current at delete time

        Raises:
            RecordNotFoundError: If the entity does not exist
        """
        spec = get_kind_spec(kind)
        current = await self.get_latest_by_identity(kind, identity_id)

        try:
            if spec.is_root:
                for child_kind in (EntityKind.EMPLOYEE, EntityKind.ADDRESS):
                    child = get_kind_spec(child_kind)
                    owned = select(child.identity_model.id).where(
                        child.identity_model.insured_id == identity_id
                    )
                    await self.session.execute(
                        delete(child.record_model).where(identity_column(child).in_(owned))
                    )
                    await self._identities(child).delete_where(insured_id=identity_id)
                await self.insureds.delete_where(id=identity_id)
            else:
                await self._records(spec).delete_where(**{spec.identity_fk: identity_id})
                await self._identities(spec).delete_where(id=identity_id)
        except SQLAlchemyError as e:
            LOGGER.error(
                f"Error deleting {spec.label} {identity_id}: {str(e)}",
                exc_info=True,
            )
            raise DatabaseError(f"Failed to delete {spec.label} {identity_id}", original_error=e) from e

        LOGGER.info(
            f"Deleted {spec.label} and its versions",
            extra={"identity_id": identity_id},
        )
        return current
