from timetravel.repositories.base_repository import BaseRepository
from timetravel.repositories.version_repository import VersionRepository

__all__ = ["BaseRepository", "VersionRepository"]
