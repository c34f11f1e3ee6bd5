"""Versioned resource endpoints.

Every route takes the resource type as its first path segment; ``insured``,
``employee`` and ``address`` (and their synonyms) share one set of handlers.
"""

from typing import Annotated, Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Header, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from timetravel.api.v2.errors import to_http_exception
from timetravel.core.database import get_async_session
from timetravel.core.exceptions import AppError, InvalidInputError
from timetravel.entities.kinds import EntityKind, resolve_kind
from timetravel.services.record_service import RecordService
from timetravel.utils.instants import MAX_STORED_INTEGER, parse_day_end, parse_timestamp
from timetravel.utils.logging import get_logger
from timetravel.utils.responses import create_api_response

LOGGER = get_logger(__name__)

router = APIRouter()


async def get_record_service(
    db_session: Annotated[AsyncSession, Depends(get_async_session)],
    x_request_timeout: Annotated[Optional[float], Header()] = None,
) -> RecordService:
    """Dependency for the record service.

    ``X-Request-Timeout`` (seconds) overrides the configured deadline.
    """
    return RecordService(db_session, timeout_seconds=x_request_timeout)


def parse_id(value: str) -> int:
    try:
        identity_id = int(value.strip())
    except ValueError as e:
        raise InvalidInputError(f"Please submit a valid integer id. Got: {value}", original_error=e) from e
    if not 0 < identity_id <= MAX_STORED_INTEGER:
        raise InvalidInputError(f"Id out of range: {value}")
    return identity_id


def to_field_map(body: Dict[str, Any]) -> Dict[str, Optional[str]]:
    """Stringify a JSON body into a field map; nulls stay absent."""
    return {key: None if value is None else str(value) for key, value in body.items()}


@router.get(
    "/{resource}",
    response_model=dict,
    summary="List current records",
    operation_id="list_current_records",
)
async def list_records(
    request: Request,
    resource: str,
    service: Annotated[RecordService, Depends(get_record_service)],
) -> dict:
    """List the latest version of every record of a type."""
    try:
        kind = resolve_kind(resource)
        versions = await service.list_current(kind)
    except AppError as e:
        raise to_http_exception(e) from e

    return create_api_response(
        data=versions,
        message=f"Retrieved {len(versions)} {kind.value} records",
        request=request,
    )


@router.get(
    "/{resource}/id/{identity_id}",
    response_model=dict,
    summary="Get current record by id",
    operation_id="get_record_by_id",
)
async def get_record(
    request: Request,
    resource: str,
    identity_id: str,
    service: Annotated[RecordService, Depends(get_record_service)],
) -> dict:
    """Get a record as it is now.

    For an insured the response includes its current employees and addresses.
    """
    try:
        kind = resolve_kind(resource)
        record_id = parse_id(identity_id)
        if kind is EntityKind.INSURED:
            result = await service.get_as_of(kind, record_id)
        else:
            result = await service.get_latest(kind, record_id)
    except AppError as e:
        raise to_http_exception(e) from e

    return create_api_response(data=result, message=f"{kind.value} retrieved", request=request)


@router.get(
    "/{resource}/history/{identity_id}",
    response_model=dict,
    summary="Get every version of a record",
    operation_id="get_record_history",
)
async def get_history(
    request: Request,
    resource: str,
    identity_id: str,
    service: Annotated[RecordService, Depends(get_record_service)],
) -> dict:
    try:
        kind = resolve_kind(resource)
        versions = await service.history(kind, parse_id(identity_id))
    except AppError as e:
        raise to_http_exception(e) from e

    return create_api_response(
        data=versions,
        message=f"Retrieved {len(versions)} versions",
        request=request,
    )


@router.post(
    "/{resource}/new",
    response_model=dict,
    status_code=status.HTTP_201_CREATED,
    summary="Create a record",
    operation_id="create_record",
)
async def create_record(
    request: Request,
    resource: str,
    body: Annotated[Dict[str, Any], Body()],
    service: Annotated[RecordService, Depends(get_record_service)],
) -> dict:
    """Create a record from a JSON object of fields.

    Accepted fields: ``name``, ``startDate``, ``endDate``, ``address``,
    ``insuredId``.
    """
    try:
        kind = resolve_kind(resource)
        version = await service.create(kind, to_field_map(body))
    except AppError as e:
        raise to_http_exception(e) from e

    return create_api_response(data=version, message=f"{kind.value} created", request=request)


@router.put(
    "/{resource}/update",
    response_model=dict,
    summary="Update a record",
    operation_id="update_record",
)
async def update_record(
    request: Request,
    resource: str,
    body: Annotated[Dict[str, Any], Body()],
    service: Annotated[RecordService, Depends(get_record_service)],
) -> dict:
    """Append a new version to an employee or address.

    Fields left out of the body keep their current values. Insureds cannot
    be updated.
    """
    try:
        kind = resolve_kind(resource)
        version = await service.update(kind, to_field_map(body))
    except AppError as e:
        raise to_http_exception(e) from e

    return create_api_response(data=version, message=f"{kind.value} updated", request=request)


@router.delete(
    "/{resource}/delete/{identity_id}",
    response_model=dict,
    summary="Delete a record",
    operation_id="delete_record",
)
async def delete_record(
    request: Request,
    resource: str,
    identity_id: str,
    service: Annotated[RecordService, Depends(get_record_service)],
) -> dict:
    """Delete a record with its whole history and return its last version."""
    try:
        kind = resolve_kind(resource)
        version = await service.delete(kind, parse_id(identity_id))
    except AppError as e:
        raise to_http_exception(e) from e

    return create_api_response(data=version, message=f"{kind.value} deleted", request=request)


@router.get(
    "/{resource}/getbydate/{insured_id}/{day}",
    response_model=dict,
    summary="Get records as of the end of a day",
    operation_id="get_records_by_date",
)
async def get_by_date(
    request: Request,
    resource: str,
    insured_id: str,
    day: str,
    service: Annotated[RecordService, Depends(get_record_service)],
) -> dict:
    """Read an insured, or its employees or addresses, as of the last second of a UTC day."""
    try:
        kind = resolve_kind(resource)
        result = await service.get_as_of(kind, parse_id(insured_id), parse_day_end(day))
    except AppError as e:
        raise to_http_exception(e) from e

    return create_api_response(data=result, message=f"{kind.value} as of {day}", request=request)


@router.get(
    "/{resource}/getbytimestamp/{insured_id}/{timestamp}",
    response_model=dict,
    summary="Get records as of an epoch timestamp",
    operation_id="get_records_by_timestamp",
)
async def get_by_timestamp(
    request: Request,
    resource: str,
    insured_id: str,
    timestamp: str,
    service: Annotated[RecordService, Depends(get_record_service)],
) -> dict:
    try:
        kind = resolve_kind(resource)
        result = await service.get_as_of(kind, parse_id(insured_id), parse_timestamp(timestamp))
    except AppError as e:
        raise to_http_exception(e) from e

    return create_api_response(
        data=result, message=f"{kind.value} as of {timestamp}", request=request
    )
