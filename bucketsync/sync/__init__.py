"""Sync engine for bucketsync - two-way directory/bucket synchronization."""

from .comparator import FileComparator, SyncAction, SyncDecision
from .engine import SyncEngine, SyncReport
from .operations import SyncOperations
from .scanner import DirectoryScanner, LocalFileRecord

__all__ = [
    "SyncEngine",
    "SyncReport",
    "SyncOperations",
    "DirectoryScanner",
    "FileComparator",
    "SyncAction",
    "SyncDecision",
    "LocalFileRecord",
]
