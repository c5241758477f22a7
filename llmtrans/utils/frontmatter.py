"""Markdown YAML frontmatter handling; only the body is sent for translation."""

import logging
from typing import Any, Dict, Optional, Tuple

import yaml

logger = logging.getLogger(__name__)

DELIMITER = "---"


def extract_frontmatter(text: str) -> Tuple[str, str]:
    """
    Split a leading ``---`` block off ``text``.

    Returns:
        (frontmatter including both delimiters and the trailing newline, body).
        When there is no complete block the frontmatter is "" and the body is
        the whole text.
    """
    if not text.startswith(DELIMITER):
        return "", text

    closing = text.find("\n" + DELIMITER, len(DELIMITER))
    if closing == -1:
        return "", text

    end = closing + 1 + len(DELIMITER)
    if end < len(text) and text[end] == "\n":
        end += 1

    return text[:end], text[end:]


def parse_frontmatter(frontmatter: str) -> Optional[Dict[str, Any]]:
    """
    Parse a block returned by extract_frontmatter.

    Returns:
        The mapping ({} for a block with no content), or None when there is
        no block or its content is not a YAML mapping
    """
    if not frontmatter:
        return None

    content = frontmatter[len(DELIMITER):]
    closing = content.find("\n" + DELIMITER)
    if closing != -1:
        content = content[:closing]

    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError:
        return None
    if data is None:
        return {}
    return data if isinstance(data, dict) else None


def build_frontmatter(data: Dict[str, Any]) -> str:
    """Render ``data`` as a ``---`` delimited block; "" for an empty mapping."""
    if not data:
        return ""
    body = yaml.safe_dump(data, default_flow_style=False, sort_keys=False, allow_unicode=True)
    return f"{DELIMITER}\n{body}{DELIMITER}\n"


def update_frontmatter(frontmatter: str, updates: Dict[str, Any]) -> str:
    """
    Add or replace ``updates`` in a frontmatter block, creating one if absent.

    Existing keys keep their position; new keys are appended. A block whose
    content is not a YAML mapping is returned unchanged.
    """
    if not updates:
        return frontmatter

    data = parse_frontmatter(frontmatter)
    if data is None:
        if frontmatter:
            logger.warning("Frontmatter is not a YAML mapping; analysis results not written")
            return frontmatter
        data = {}

    data.update(updates)
    return build_frontmatter(data)


def merge_frontmatter(frontmatter: str, body: str) -> str:
    """Reassemble a document from its frontmatter and translated body."""
    if frontmatter and body and not frontmatter.endswith("\n"):
        return f"{frontmatter}\n{body}"
    return frontmatter + body
