"""SQLAlchemy models for the versioned record tables.

Each child kind has an identity table (stable id, owning insured) and a
records table holding one immutable row per version. The insured row is its
own identity and its only version.
"""

from typing import Optional

from sqlalchemy import BigInteger, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from timetravel.core.database import Base


class Insured(Base):
    """Insured policy holder. Identity row and version 0 at once."""

    __tablename__ = "insured"
    __table_args__ = {"sqlite_autoincrement": True}

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    policy_number: Mapped[int] = mapped_column(Integer, unique=True, nullable=False)
    record_timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)

    employees: Mapped[list["Employee"]] = relationship(
        "Employee", back_populates="insured", cascade="all, delete-orphan", passive_deletes=True
    )
    addresses: Mapped[list["Address"]] = relationship(
        "Address", back_populates="insured", cascade="all, delete-orphan", passive_deletes=True
    )


class Employee(Base):
    """Employee identity. ``name`` is the natural key captured at creation."""

    __tablename__ = "employees"
    __table_args__ = (
        UniqueConstraint("insured_id", "name", name="uq_employees_insured_id_name"),
        {"sqlite_autoincrement": True},
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    insured_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("insured.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String, nullable=False)

    insured: Mapped["Insured"] = relationship("Insured", back_populates="employees")
    records: Mapped[list["EmployeeRecord"]] = relationship(
        "EmployeeRecord", back_populates="employee", cascade="all, delete-orphan", passive_deletes=True
    )


class EmployeeRecord(Base):
    """One version of an employee."""

    __tablename__ = "employees_records"
    __table_args__ = {"sqlite_autoincrement": True}

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    employee_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    start_date: Mapped[str] = mapped_column(String(10), nullable=False)  # YYYY-MM-DD
    end_date: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)  # YYYY-MM-DD
    record_timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)

    employee: Mapped["Employee"] = relationship("Employee", back_populates="records")


class Address(Base):
    """Address identity. An insured has at most one."""

    __tablename__ = "insured_addresses"
    __table_args__ = {"sqlite_autoincrement": True}

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    insured_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("insured.id", ondelete="CASCADE"), nullable=False, unique=True
    )

    insured: Mapped["Insured"] = relationship("Insured", back_populates="addresses")
    records: Mapped[list["AddressRecord"]] = relationship(
        "AddressRecord", back_populates="address_identity", cascade="all, delete-orphan", passive_deletes=True
    )


class AddressRecord(Base):
    """One version of an insured's address."""

    __tablename__ = "insured_addresses_records"
    __table_args__ = {"sqlite_autoincrement": True}

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    address_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("insured_addresses.id", ondelete="CASCADE"), nullable=False, index=True
    )
    address: Mapped[str] = mapped_column(Text, nullable=False)
    record_timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)

    address_identity: Mapped["Address"] = relationship("Address", back_populates="records")
