from timetravel.services.assembler import EntityAssembler
from timetravel.services.point_in_time import PointInTimeSelector
from timetravel.services.record_service import RecordService
from timetravel.services.write_validator import WritePathValidator

__all__ = [
    "EntityAssembler",
    "PointInTimeSelector",
    "RecordService",
    "WritePathValidator",
]
