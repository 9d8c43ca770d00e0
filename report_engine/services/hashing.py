"""Content fingerprinting of the inputs used for a report."""

import hashlib
import json
from typing import Any, Mapping


def _canonical(value: Any) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=str)


def compute_source_hash(inputs: Mapping[str, Any]) -> str:
    """
    Fingerprint the data of every input actually used.

    Args:
        inputs: Mapping of form id to that form's submission data. Values may be
            plain dicts or objects with a ``data`` attribute (submissions).

    Returns:
        SHA256 hex digest, independent of key ordering at every level.
        Submission ids and timestamps are not part of the digest.
    """
    normalized = {}
    for form_id, value in inputs.items():
        data = getattr(value, "data", value)
        normalized[str(form_id)] = data if data is not None else {}

    return hashlib.sha256(_canonical(normalized).encode("utf-8")).hexdigest()
