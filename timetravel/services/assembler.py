"""Composition of an insured with its children as of an instant."""

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from timetravel.core.exceptions import RecordNotFoundError
from timetravel.entities.kinds import EntityKind
from timetravel.schemas.records import InsuredSnapshot
from timetravel.services.point_in_time import PointInTimeSelector
from timetravel.utils.logging import get_logger

LOGGER = get_logger(__name__)


class EntityAssembler:
    """Builds ``InsuredSnapshot`` objects from point-in-time selections."""

    def __init__(self, session: AsyncSession, selector: Optional[PointInTimeSelector] = None):
        self.session = session
        self.selector = selector or PointInTimeSelector(session)

    async def assemble(self, root_id: int, at: int) -> InsuredSnapshot:
        """Assemble an insured, its employees and its addresses as of ``at``.

        Args:
            root_id: Insured identity
            at: Instant in epoch seconds, inclusive

        Returns:
            InsuredSnapshot: The insured as it was at ``at``; child lists may be empty

        Raises:
            RecordNotFoundError: If the insured did not exist at ``at``
        """
        insured = await self.selector.select_root_as_of(root_id, at)
        if insured is None:
            raise RecordNotFoundError(f"No insured with id {root_id} existed at {at}")

        employees = await self.selector.select_as_of(EntityKind.EMPLOYEE, root_id, at)
        addresses = await self.selector.select_as_of(EntityKind.ADDRESS, root_id, at)

        LOGGER.info(
            "Assembled insured snapshot",
            extra={
                "insured_id": root_id,
                "as_of": at,
                "employee_count": len(employees),
                "address_count": len(addresses),
            },
        )
        return InsuredSnapshot(
            as_of=at,
            insured=insured,
            employees=employees,
            addresses=addresses,
        )
