"""Commit and branch history for projects."""

from .records import BranchInfo, CommitRecord, DiffResult, FileStatus
from .service import MAIN_BRANCH, VersionManager

__all__ = [
    "BranchInfo",
    "CommitRecord",
    "DiffResult",
    "FileStatus",
    "MAIN_BRANCH",
    "VersionManager",
]
