"""Scraper utility functions."""

from .hashing import compute_json_hash, compute_record_hash, normalize_json_for_hash
from .diff import DiffStatus, DirectoryDiff, compute_directory_diff

__all__ = [
    "compute_json_hash",
    "compute_record_hash",
    "normalize_json_for_hash",
    "DiffStatus",
    "DirectoryDiff",
    "compute_directory_diff",
]
