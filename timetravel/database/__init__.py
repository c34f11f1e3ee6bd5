"""Database module for SQLAlchemy models."""

from timetravel.database.models import (
    Address,
    AddressRecord,
    Employee,
    EmployeeRecord,
    Insured,
)

__all__ = [
    "Address",
    "AddressRecord",
    "Employee",
    "EmployeeRecord",
    "Insured",
]
