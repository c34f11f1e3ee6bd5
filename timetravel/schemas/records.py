"""Typed record schemas.

Field maps arrive from the HTTP layer as ``dict[str, str]``. They are parsed
into one of the per-kind input models straight away so nothing below the
service boundary handles raw strings. Versions read back from the store are
returned as ``VersionRecord``; an insured with its children as of an instant
is an ``InsuredSnapshot``.
"""

from datetime import date, datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Type, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from timetravel.core.exceptions import InvalidInputError
from timetravel.entities.kinds import EntityKind
from timetravel.utils.instants import MAX_STORED_INTEGER

DATE_FORMAT = "%Y-%m-%d"
RECORD_DATETIME_FORMAT = "%a, %d %b %Y %H:%M:%S UTC"

INSURED_ID_ALIASES = AliasChoices("insuredId", "rootId", "insured_id")


def parse_date(value: Any) -> Optional[date]:
    """Parse a ``YYYY-MM-DD`` string. Empty strings become None."""
    if value is None or isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return datetime.strptime(text, DATE_FORMAT).date()
    except ValueError as e:
        raise ValueError(f"'{text}' is not a date in format YYYY-MM-DD") from e


def format_date(value: Optional[date]) -> str:
    return value.strftime(DATE_FORMAT) if value else ""


class RecordInput(BaseModel):
    """Base class for per-kind write inputs."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True, extra="ignore")

    def values(self) -> Dict[str, Any]:
        """Version column values carried by this input."""
        raise NotImplementedError


class InsuredInput(RecordInput):
    """Fields accepted when creating an insured."""

    name: str = Field(..., min_length=1, description="Insured display name")

    def values(self) -> Dict[str, Any]:
        return {"name": self.name}


class EmployeeInput(RecordInput):
    """Fields accepted when creating or updating an employee."""

    insured_id: int = Field(..., gt=0, le=MAX_STORED_INTEGER, validation_alias=INSURED_ID_ALIASES)
    employee_id: Optional[int] = Field(
        default=None,
        gt=0,
        le=MAX_STORED_INTEGER,
        validation_alias=AliasChoices("employeeId", "employee_id", "id"),
    )
    name: str = Field(..., min_length=1)
    start_date: date = Field(..., validation_alias=AliasChoices("startDate", "start_date"))
    end_date: Optional[date] = Field(
        default=None, validation_alias=AliasChoices("endDate", "end_date")
    )

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def _parse_dates(cls, value: Any) -> Optional[date]:
        return parse_date(value)

    @model_validator(mode="after")
    def _check_date_order(self) -> "EmployeeInput":
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValueError("endDate must not be before startDate")
        return self

    def values(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "start_date": self.start_date,
            "end_date": self.end_date,
        }


class AddressInput(RecordInput):
    """Fields accepted when creating or updating an insured's address."""

    insured_id: int = Field(..., gt=0, le=MAX_STORED_INTEGER, validation_alias=INSURED_ID_ALIASES)
    address: str = Field(..., min_length=1)

    def values(self) -> Dict[str, Any]:
        return {"address": self.address}


class UpdateTarget(RecordInput):
    """Fields that locate the child entity an update applies to."""

    insured_id: int = Field(..., gt=0, le=MAX_STORED_INTEGER, validation_alias=INSURED_ID_ALIASES)
    employee_id: Optional[int] = Field(
        default=None,
        gt=0,
        le=MAX_STORED_INTEGER,
        validation_alias=AliasChoices("employeeId", "employee_id", "id"),
    )
    name: Optional[str] = None


INPUT_MODELS: Dict[EntityKind, Type[RecordInput]] = {
    EntityKind.INSURED: InsuredInput,
    EntityKind.EMPLOYEE: EmployeeInput,
    EntityKind.ADDRESS: AddressInput,
}

AnyRecordInput = Union[InsuredInput, EmployeeInput, AddressInput]


def _describe_validation_error(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(loc) for loc in item.get("loc", ())) or "input"
        message = item.get("msg", "invalid value")
        parts.append(f"{location}: {message}")
    return "; ".join(parts)


def _validate(model: Type[RecordInput], kind: EntityKind, field_map: Mapping[str, Optional[str]]):
    present = {key: value for key, value in field_map.items() if value is not None}
    try:
        return model.model_validate(present)
    except ValidationError as e:
        raise InvalidInputError(
            f"Invalid {kind.value} fields: {_describe_validation_error(e)}", original_error=e
        ) from e


def parse_fields(kind: EntityKind, field_map: Mapping[str, Optional[str]]) -> AnyRecordInput:
    """Parse a string-valued field map into the typed input for a kind.

    Keys whose value is None are treated as absent.

    Raises:
        InvalidInputError: If a required field is missing or malformed
    """
    return _validate(INPUT_MODELS[kind], kind, field_map)


def parse_target(kind: EntityKind, field_map: Mapping[str, Optional[str]]) -> UpdateTarget:
    """Parse the keys of a field map that identify an update's target.

    Raises:
        InvalidInputError: If ``insuredId`` is missing or an id is malformed
    """
    return _validate(UpdateTarget, kind, field_map)


def canonical_fields(kind: EntityKind, field_map: Mapping[str, Optional[str]]) -> Dict[str, str]:
    """Re-key a field map by input field name, dropping unknown keys and None values.

    ``{"startDate": "2020-01-01"}`` becomes ``{"start_date": "2020-01-01"}``.
    """
    lookup = {}
    for field_name, info in INPUT_MODELS[kind].model_fields.items():
        lookup[field_name] = field_name
        alias = info.validation_alias
        if isinstance(alias, AliasChoices):
            for choice in alias.choices:
                if isinstance(choice, str):
                    lookup[choice] = field_name
        elif isinstance(alias, str):
            lookup[alias] = field_name

    return {
        lookup[key]: value
        for key, value in field_map.items()
        if key in lookup and value is not None
    }


class VersionRecord(BaseModel):
    """One immutable version of an entity."""

    model_config = ConfigDict(frozen=True)

    kind: EntityKind
    id: int = Field(..., description="Stable identity of the entity")
    insured_id: int = Field(..., description="Owning insured (itself for an insured)")
    version_id: int = Field(..., description="Primary key of the version row")
    record_timestamp: int = Field(..., description="Unix epoch seconds")
    values: Dict[str, Any] = Field(default_factory=dict)

    @property
    def record_datetime(self) -> datetime:
        return datetime.fromtimestamp(self.record_timestamp, tz=timezone.utc)

    def to_input_map(self) -> Dict[str, str]:
        """Render this version as a string field map keyed by input field name."""
        if self.kind is EntityKind.INSURED:
            return {"name": self.values["name"]}
        if self.kind is EntityKind.EMPLOYEE:
            return {
                "insured_id": str(self.insured_id),
                "employee_id": str(self.id),
                "name": self.values["name"],
                "start_date": format_date(self.values["start_date"]),
                "end_date": format_date(self.values.get("end_date")),
            }
        return {"insured_id": str(self.insured_id), "address": self.values["address"]}

    def to_data(self) -> Dict[str, str]:
        """String-valued representation returned over the wire."""
        data = {"id": str(self.id)}
        if self.kind is EntityKind.INSURED:
            data["name"] = self.values["name"]
            data["policyNumber"] = str(self.values["policy_number"])
        elif self.kind is EntityKind.EMPLOYEE:
            data["name"] = self.values["name"]
            data["startDate"] = format_date(self.values["start_date"])
            data["endDate"] = format_date(self.values.get("end_date"))
            data["insuredId"] = str(self.insured_id)
        else:
            data["address"] = self.values["address"]
            data["insuredId"] = str(self.insured_id)
        data["recordTimestamp"] = str(self.record_timestamp)
        data["recordDateTime"] = self.record_datetime.strftime(RECORD_DATETIME_FORMAT)
        return data


class InsuredSnapshot(BaseModel):
    """An insured with its employees and addresses as they were at ``as_of``."""

    model_config = ConfigDict(frozen=True)

    as_of: int = Field(..., description="Unix epoch seconds the snapshot was taken at")
    insured: VersionRecord
    employees: List[VersionRecord] = Field(default_factory=list)
    addresses: List[VersionRecord] = Field(default_factory=list)

    def to_data(self) -> Dict[str, Any]:
        data: Dict[str, Any] = dict(self.insured.to_data())
        data["asOf"] = str(self.as_of)
        data["employees"] = [employee.to_data() for employee in self.employees]
        data["addresses"] = [address.to_data() for address in self.addresses]
        return data
