"""Record service: the inbound boundary of the versioned record engine.

Each public operation runs in its own transaction under a deadline. Field
maps are parsed into typed inputs before anything touches the store.
"""

import asyncio
from typing import Awaitable, Callable, List, Mapping, Optional, TypeVar, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from timetravel.core.config import settings
from timetravel.core.exceptions import (
    DatabaseError,
    DeadlineExceededError,
    RecordNotFoundError,
)
from timetravel.entities.kinds import EntityKind
from timetravel.repositories.version_repository import VersionRepository
from timetravel.schemas.records import InsuredSnapshot, VersionRecord, parse_fields
from timetravel.services.assembler import EntityAssembler
from timetravel.services.point_in_time import PointInTimeSelector
from timetravel.services.write_validator import WritePathValidator
from timetravel.utils.instants import Clock, to_epoch_seconds, utc_now
from timetravel.utils.logging import get_logger

LOGGER = get_logger(__name__)

T = TypeVar("T")

AsOfResult = Union[InsuredSnapshot, List[VersionRecord]]


class RecordService:
    """Service for reading and writing versioned insured records.

    Provides create, update, delete, latest, as-of, history and listing
    operations over every entity kind.
    """

    def __init__(
        self,
        session: AsyncSession,
        clock: Clock = utc_now,
        timeout_seconds: Optional[float] = None,
    ):
        """Initialize the record service.

        Args:
            session: SQLAlchemy async session
            clock: Source of the current instant for new versions
            timeout_seconds: Per-operation deadline, defaults to the configured one
        """
        self.session = session
        self.clock = clock
        self.timeout_seconds = (
            timeout_seconds if timeout_seconds is not None else settings.request_timeout_seconds
        )
        self.versions = VersionRepository(session)
        self.selector = PointInTimeSelector(session)
        self.assembler = EntityAssembler(session, self.selector)
        self.validator = WritePathValidator(session, self.versions)

    def now(self) -> int:
        """Current instant in epoch seconds according to the service clock."""
        return to_epoch_seconds(self.clock())

    async def _run(self, operation: str, work: Callable[[], Awaitable[T]]) -> T:
        try:
            async with self.session.begin():
                return await asyncio.wait_for(work(), timeout=self.timeout_seconds)
        except asyncio.TimeoutError as e:
            LOGGER.warning(
                f"{operation} exceeded its deadline",
                extra={"timeout_seconds": self.timeout_seconds},
            )
            raise DeadlineExceededError(
                f"{operation} did not finish within {self.timeout_seconds} seconds",
                original_error=e,
            ) from e
        except SQLAlchemyError as e:
            LOGGER.error(f"{operation} failed: {str(e)}", exc_info=True)
            raise DatabaseError(f"{operation} failed", original_error=e) from e

    async def create(self, kind: EntityKind, field_map: Mapping[str, Optional[str]]) -> VersionRecord:
        """Create an entity from a string field map.

        Args:
            kind: Entity kind
            field_map: Fields such as ``name``, ``startDate`` or ``insuredId``

        Returns:
            VersionRecord: First version of the created entity
        """
        record_input = parse_fields(kind, field_map)
        timestamp = self.now()
        LOGGER.info(f"Creating {kind.value}", extra={"record_timestamp": timestamp})
        return await self._run(
            f"create {kind.value}",
            lambda: self.validator.create(kind, record_input, timestamp),
        )

    async def update(self, kind: EntityKind, field_map: Mapping[str, Optional[str]]) -> VersionRecord:
        """Append a new version to an existing entity.

        Returns:
            VersionRecord: The new version
        """
        timestamp = self.now()
        LOGGER.info(f"Updating {kind.value}", extra={"record_timestamp": timestamp})
        return await self._run(
            f"update {kind.value}",
            lambda: self.validator.update(kind, field_map, timestamp),
        )

    async def delete(self, kind: EntityKind, identity_id: int) -> VersionRecord:
        """Delete an entity and return its last version."""
        LOGGER.info(f"Deleting {kind.value}", extra={"identity_id": identity_id})
        return await self._run(
            f"delete {kind.value}",
            lambda: self.validator.delete(kind, identity_id),
        )

    async def get_latest(self, kind: EntityKind, identity_id: int) -> VersionRecord:
        """Get the latest version of an entity.

        Raises:
            RecordNotFoundError: If the entity does not exist
        """
        return await self._run(
            f"get {kind.value}",
            lambda: self.versions.get_latest_by_identity(kind, identity_id),
        )

    async def get_as_of(
        self,
        kind: EntityKind,
        root_id: int,
        instant: Optional[int] = None,
    ) -> AsOfResult:
        """Read an insured, or one kind of its children, as of an instant.

        Args:
            kind: Entity kind
            root_id: Insured identity
            instant: Epoch seconds, inclusive; defaults to now

        Returns:
            An ``InsuredSnapshot`` for the insured kind, otherwise the list of
            child versions selected at the instant (possibly empty)

        Raises:
            RecordNotFoundError: If the insured did not exist at the instant
        """
        at = self.now() if instant is None else instant

        async def read() -> AsOfResult:
            if kind is EntityKind.INSURED:
                return await self.assembler.assemble(root_id, at)
            if await self.selector.select_root_as_of(root_id, at) is None:
                raise RecordNotFoundError(f"No insured with id {root_id} existed at {at}")
            return await self.selector.select_as_of(kind, root_id, at)

        return await self._run(f"get {kind.value} as of {at}", read)

    async def history(self, kind: EntityKind, identity_id: int) -> List[VersionRecord]:
        """Get every version of an entity, oldest first."""
        return await self._run(
            f"history of {kind.value}",
            lambda: self.versions.list_versions(kind, identity_id),
        )

    async def list_current(self, kind: EntityKind) -> List[VersionRecord]:
        """Get the latest version of every entity of a kind."""
        return await self._run(
            f"list {kind.value}",
            lambda: self.versions.list_current(kind),
        )
