from timetravel.schemas.records import (
    AddressInput,
    EmployeeInput,
    InsuredInput,
    InsuredSnapshot,
    UpdateTarget,
    VersionRecord,
    canonical_fields,
    parse_fields,
    parse_target,
)

__all__ = [
    "AddressInput",
    "EmployeeInput",
    "InsuredInput",
    "InsuredSnapshot",
    "UpdateTarget",
    "VersionRecord",
    "canonical_fields",
    "parse_fields",
    "parse_target",
]
