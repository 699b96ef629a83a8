"""Project storage helpers for the Codeloft backend."""

from .keys import PROJECT_INDEX_KEY, ProjectKeys
from .records import FileRecord, FileSummary, ProjectRecord
from .service import ProjectManager

__all__ = [
    "PROJECT_INDEX_KEY",
    "ProjectKeys",
    "ProjectManager",
    "ProjectRecord",
    "FileRecord",
    "FileSummary",
]
