"""Point-in-time selection of entity versions.

For every grouping key of a kind, the selected version is the one with the
greatest record timestamp at or before the cutoff. Ties on the timestamp go
to the later-inserted version row.
"""

from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from timetravel.entities.kinds import EntityKind, get_kind_spec
from timetravel.repositories.version_repository import (
    identity_column,
    latest_first,
    latest_per_group,
    owner_column,
    to_version_record,
    versions_query,
)
from timetravel.schemas.records import VersionRecord
from timetravel.utils.logging import get_logger

LOGGER = get_logger(__name__)


class PointInTimeSelector:
    """Selects the versions that were current at a given instant."""

    def __init__(self, session: AsyncSession):
        """Initialize the selector.

        Args:
            session: SQLAlchemy async session
        """
        self.session = session

    async def select_as_of(
        self,
        kind: EntityKind,
        root_id: int,
        cutoff: int,
    ) -> List[VersionRecord]:
        """Select the versions of a child kind owned by an insured as of ``cutoff``.

        Employees are grouped by identity and name, addresses by identity.
        Groups with no version at or before the cutoff are left out.

        Args:
            kind: Child entity kind
            root_id: Owning insured
            cutoff: Inclusive upper bound in epoch seconds

        Returns:
            List of selected versions, ordered by identity
        """
        spec = get_kind_spec(kind)
        record = spec.record_model
        partition = [identity_column(spec)]
        partition.extend(getattr(record, field) for field in spec.group_by)

        query = latest_per_group(
            spec,
            partition,
            conditions=[owner_column(spec) == root_id, record.record_timestamp <= cutoff],
        )
        result = await self.session.execute(query)
        versions = [to_version_record(spec, row[0], row.owner_id) for row in result.all()]

        LOGGER.debug(
            f"Selected {spec.label} versions as of cutoff",
            extra={"root_id": root_id, "cutoff": cutoff, "count": len(versions)},
        )
        return versions

    async def select_root_as_of(self, root_id: int, cutoff: int) -> Optional[VersionRecord]:
        """Select the insured version current at ``cutoff``, or None if it did not exist yet."""
        spec = get_kind_spec(EntityKind.INSURED)
        query = (
            versions_query(spec)
            .where(
                identity_column(spec) == root_id,
                spec.record_model.record_timestamp <= cutoff,
            )
            .order_by(*latest_first(spec))
            .limit(1)
        )
        result = await self.session.execute(query)
        row = result.first()
        if row is None:
            return None
        return to_version_record(spec, row[0], row.owner_id)
