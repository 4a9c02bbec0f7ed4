"""Feedback normalization.

Source connectors hand back raw per-kind records in whatever shape the
source system uses. This module flattens them into one ordered list of
FeedbackItem, always in [Review, Comment, InlineComment] order. No
filtering happens here.
"""

from typing import Any, List, Mapping, Optional, Union

from watchbot.core.adf import extract_text_from_adf
from watchbot.core.errors import MalformedResponseError
from watchbot.core.models import FeedbackItem, FeedbackKind, RawFeedback

_RAW_FIELDS = {
    FeedbackKind.REVIEW: "reviews",
    FeedbackKind.COMMENT: "comments",
    FeedbackKind.INLINE_COMMENT: "inline_comments",
}


def normalize_feedback(raw: Union[RawFeedback, Mapping[str, Any]]) -> List[FeedbackItem]:
    """
    Flatten raw per-kind feedback into a single ordered sequence.
    
    Args:
        raw: RawFeedback, or a mapping with "reviews", "comments" and
             "inline_comments" keys (missing keys are treated as empty)
        
    Returns:
        Reviews first, then comments, then inline comments; each group
        keeps the order the source returned it in
        
    Raises:
        MalformedResponseError: If a group is not a list or a record is unusable
    """
    items: List[FeedbackItem] = []
    for kind, field_name in _RAW_FIELDS.items():
        if isinstance(raw, RawFeedback):
            records = getattr(raw, field_name)
        else:
            records = raw.get(field_name) or []

        if not isinstance(records, list):
            raise MalformedResponseError(
                f"Expected a list of {field_name}, got {type(records).__name__}"
            )

        for record in records:
            items.append(_normalize_record(kind, record))
    return items


def _normalize_record(kind: FeedbackKind, record: Any) -> FeedbackItem:
    if not isinstance(record, Mapping):
        raise MalformedResponseError(
            f"{kind.value} record is not an object: {record!r}"
        )

    source_id = record.get("id")
    if source_id is None or source_id == "":
        raise MalformedResponseError(f"{kind.value} record has no id")

    state = record.get("state") if kind == FeedbackKind.REVIEW else None

    file_path = None
    line_number = None
    if kind == FeedbackKind.INLINE_COMMENT:
        file_path = record.get("path")
        line_number = _line_number(record)

    return FeedbackItem(
        kind=kind,
        source_id=str(source_id),
        author=_author(record),
        body=extract_text_from_adf(record.get("body")),
        state=state,
        file_path=file_path,
        line_number=line_number,
        timestamp=_timestamp(record),
    )


def _author(record: Mapping[str, Any]) -> str:
    # GitHub: {"user": {"login": ...}}; Jira: {"author": {"displayName": ...}}
    user = record.get("user")
    if isinstance(user, Mapping) and user.get("login"):
        return str(user["login"])

    author = record.get("author")
    if isinstance(author, Mapping):
        for key in ("displayName", "emailAddress", "accountId", "name"):
            if author.get(key):
                return str(author[key])
    elif isinstance(author, str) and author:
        return author

    return "unknown"


def _line_number(record: Mapping[str, Any]) -> Optional[int]:
    for key in ("line", "original_line"):
        value = record.get(key)
        if value is None:
            continue
        try:
            return int(value)
        except (TypeError, ValueError):
            raise MalformedResponseError(f"Invalid line number: {value!r}")
    return None


def _timestamp(record: Mapping[str, Any]) -> Optional[str]:
    for key in ("submitted_at", "created_at", "created"):
        if record.get(key):
            return str(record[key])
    return None
