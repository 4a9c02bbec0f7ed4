"""Plain-text extraction from Atlassian Document Format (ADF)."""

from typing import Any, List

_BLOCK_TYPES = ("paragraph", "heading")


def extract_text_from_adf(content: Any, empty: str = "") -> str:
    """
    Flatten an ADF document (or plain string) to text.
    
    Args:
        content: ADF node dict, plain string, or None
        empty: Value returned when no text could be extracted
        
    Returns:
        Plain text with paragraph breaks and list bullets preserved
    """
    if content is None:
        return empty
    if isinstance(content, str):
        return content
    if not isinstance(content, dict):
        return empty

    parts: List[str] = []

    def text_so_far() -> str:
        return "".join(parts)

    def traverse(node: Any) -> None:
        if not isinstance(node, dict):
            return

        node_type = node.get("type")

        if node_type == "text":
            parts.append(node.get("text") or "")

        if node_type in _BLOCK_TYPES:
            current = text_so_far()
            if current and not current.endswith(("\n", "• ")):
                parts.append("\n")

        if node_type == "hardBreak":
            parts.append("\n")

        if node_type == "listItem":
            parts.append("• ")

        children = node.get("content")
        if isinstance(children, list):
            for child in children:
                traverse(child)
            if node_type in ("paragraph", "listItem"):
                parts.append("\n")

    traverse(content)
    return text_so_far().strip() or empty
