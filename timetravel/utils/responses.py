from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import uuid4

from fastapi import Request

from timetravel.schemas.response import ApiResponse, ResponseMeta


def create_api_response(
    data: Any,
    message: str = "Operation successful",
    status: bool = True,
    request: Optional[Request] = None,
    api_version: str = "v2",
) -> Dict[str, Any]:
    """Create a standardized API response as a dictionary.

    Objects exposing ``to_data()`` (versions and snapshots) are rendered with
    it; lists are wrapped as ``{"items": [...], "total": n}``.
    """
    request_id = str(uuid4())
    if request is not None and hasattr(request.state, "correlation_id"):
        request_id = request.state.correlation_id

    meta = ResponseMeta(
        timestamp=datetime.now(timezone.utc),
        request_id=request_id,
        api_version=api_version,
    )

    if isinstance(data, dict):
        data_dict = data
    elif hasattr(data, "to_data"):
        data_dict = data.to_data()
    elif isinstance(data, list):
        items = [item.to_data() if hasattr(item, "to_data") else item for item in data]
        data_dict = {"items": items, "total": len(items)}
    elif data is None:
        data_dict = {}
    else:
        data_dict = {"value": data}

    response = ApiResponse(status=status, message=message, data=data_dict, meta=meta)
    return response.model_dump(mode="json")
