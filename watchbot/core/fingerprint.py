"""Deterministic content fingerprints over normalized feedback."""

import hashlib
import json
from typing import Sequence

from watchbot.core.models import FeedbackItem


def canonical_serialize(items: Sequence[FeedbackItem]) -> bytes:
    """
    Serialize the fingerprint-relevant fields of each item.
    
    Only kind, source id, body and state take part. Author, timestamps and
    file positions do not, so metadata churn alone never triggers a task.
    
    Args:
        items: Normalized feedback items in arrival order
        
    Returns:
        UTF-8 encoded canonical JSON
    """
    reduced = [
        {
            "kind": item.kind.value,
            "source_id": item.source_id,
            "body": item.body,
            "state": item.state,
        }
        for item in items
    ]
    return json.dumps(
        reduced,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    ).encode("utf-8")


def compute_fingerprint(items: Sequence[FeedbackItem]) -> str:
    """Return the SHA-256 hex digest of the canonical serialization."""
    return hashlib.sha256(canonical_serialize(items)).hexdigest()
