"""Entity kinds and their storage layout.

The set of kinds is closed. Everything that differs between them (tables,
value columns, how versions group for as-of reads, which natural key blocks a
duplicate create) is described once in ``KIND_SPECS`` so the store can build
its statements generically.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple, Type

from timetravel.core.database import Base
from timetravel.core.exceptions import UnknownResourceError
from timetravel.database.models import (
    Address,
    AddressRecord,
    Employee,
    EmployeeRecord,
    Insured,
)


class EntityKind(str, Enum):
    """Kinds of versioned entities."""

    INSURED = "insured"
    EMPLOYEE = "employee"
    ADDRESS = "address"


@dataclass(frozen=True)
class KindSpec:
    """Storage description of one entity kind.

    Attributes:
        kind: The entity kind
        identity_model: Table holding the stable identity
        record_model: Table holding one row per version (same as identity for insured)
        identity_fk: Column on ``record_model`` pointing at the identity, None for insured
        value_fields: Kind-specific value columns on ``record_model``
        group_by: Extra ``record_model`` columns that split one identity's
            versions into separate as-of groups
        natural_key: ``record_model`` columns which, together with the owning
            insured, must be unique at create time
        date_fields: Value columns stored as ``YYYY-MM-DD`` text
    """

    kind: EntityKind
    identity_model: Type[Base]
    record_model: Type[Base]
    identity_fk: Optional[str]
    value_fields: Tuple[str, ...]
    group_by: Tuple[str, ...] = ()
    natural_key: Tuple[str, ...] = ()
    date_fields: Tuple[str, ...] = ()

    @property
    def is_root(self) -> bool:
        return self.identity_fk is None

    @property
    def label(self) -> str:
        return self.kind.value


KIND_SPECS = {
    EntityKind.INSURED: KindSpec(
        kind=EntityKind.INSURED,
        identity_model=Insured,
        record_model=Insured,
        identity_fk=None,
        value_fields=("name", "policy_number"),
    ),
    # Employees group by name as well as identity: a renamed employee keeps
    # its old name visible as a separate entry at later instants.
    EntityKind.EMPLOYEE: KindSpec(
        kind=EntityKind.EMPLOYEE,
        identity_model=Employee,
        record_model=EmployeeRecord,
        identity_fk="employee_id",
        value_fields=("name", "start_date", "end_date"),
        group_by=("name",),
        natural_key=("name",),
        date_fields=("start_date", "end_date"),
    ),
    # One address per insured, so the natural key is the insured alone.
    EntityKind.ADDRESS: KindSpec(
        kind=EntityKind.ADDRESS,
        identity_model=Address,
        record_model=AddressRecord,
        identity_fk="address_id",
        value_fields=("address",),
    ),
}

RESOURCE_SYNONYMS = {
    "insured": EntityKind.INSURED,
    "insureds": EntityKind.INSURED,
    "employee": EntityKind.EMPLOYEE,
    "employees": EntityKind.EMPLOYEE,
    "address": EntityKind.ADDRESS,
    "addresses": EntityKind.ADDRESS,
    "insured_addresses": EntityKind.ADDRESS,
}


def get_kind_spec(kind: EntityKind) -> KindSpec:
    """Look up the storage description of a kind."""
    return KIND_SPECS[kind]


def resolve_kind(resource: str) -> EntityKind:
    """Convert a resource name from the URL into an entity kind.

    Args:
        resource: Resource name or one of its synonyms

    Returns:
        EntityKind: Matching kind

    Raises:
        UnknownResourceError: If the name is not recognised
    """
    kind = RESOURCE_SYNONYMS.get(resource.strip().lower())
    if kind is None:
        raise UnknownResourceError(
            f"Please use 'insured', 'address', or 'employee'. No endpoint for: {resource}"
        )
    return kind
