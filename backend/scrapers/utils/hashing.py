"""
Consistent JSON Hashing for Change Detection

Deterministic fingerprints of directory records, so two runs can be
compared unit by unit without caring about key order or whitespace.
"""
import hashlib
import json
from typing import Any, Dict, Iterable


def normalize_json_for_hash(data: Any) -> Any:
    """
    Normalize JSON data for consistent hashing.

    - Sorts dictionary keys
    - Removes None values
    - Normalizes whitespace in strings

    Args:
        data: JSON-serializable data

    Returns:
        Normalized data structure
    """
    if data is None:
        return None

    if isinstance(data, dict):
        return {
            k: normalize_json_for_hash(v)
            for k, v in sorted(data.items())
            if v is not None
        }

    if isinstance(data, (list, tuple)):
        # Order matters (email priority)
        return [normalize_json_for_hash(item) for item in data]

    if isinstance(data, str):
        return " ".join(data.split())

    return data


def compute_json_hash(data: Any) -> str:
    """
    Compute SHA256 hash of JSON data.

    Args:
        data: JSON-serializable data

    Returns:
        64-character hex SHA256 hash
    """
    normalized = normalize_json_for_hash(data)
    json_str = json.dumps(normalized, sort_keys=True, ensure_ascii=False)
    return hashlib.sha256(json_str.encode("utf-8")).hexdigest()


def compute_record_hash(record: Dict[str, Any], exclude: Iterable[str] = ()) -> str:
    """
    Fingerprint a record dict, ignoring bookkeeping fields.

    Args:
        record: Record as produced by to_dict()
        exclude: Keys left out of the fingerprint (e.g. timestamps)
    """
    skipped = set(exclude)
    return compute_json_hash({k: v for k, v in record.items() if k not in skipped})
