"""Topic names and the tmux session names derived from them."""

from __future__ import annotations

import re
from typing import Optional

from ubertmux.errors import InvalidTopicName


SESSION_PREFIX = "ubertmux"
WORKSPACE_ENV = "UBERTMUX_WORKSPACE"
# Not a valid topic, so it never collides with the "default" topic.
DEFAULT_TOPIC_LABEL = "(default)"

_TOPIC_RE = re.compile(r"[A-Za-z0-9_-]+")


def is_valid_topic(name: str) -> bool:
    return bool(name) and _TOPIC_RE.fullmatch(name) is not None


def validate_topic(name: str) -> str:
    """! @brief Check a topic name against the allowed character set.

    Letters, digits, hyphen and underscore only; the name must not be empty.

    @param name Candidate topic name.
    @return The unchanged name.
    @throws InvalidTopicName when any other character is present.
    """
    if not is_valid_topic(name):
        raise InvalidTopicName(
            f"Invalid topic name {name!r}: use only letters, digits, '-' and '_'."
        )
    return name


def resolve_session_name(topic: Optional[str]) -> str:
    """! @brief Map a topic to its tmux session name.

    @param topic Topic name, or None / "" for the default session.
    @return "ubertmux" or "ubertmux-<topic>".
    """
    if not topic:
        return SESSION_PREFIX
    return f"{SESSION_PREFIX}-{topic}"


def topic_from_session_name(session_name: str) -> Optional[str]:
    """Inverse of resolve_session_name; None for sessions we don't own."""
    if session_name == SESSION_PREFIX:
        return ""
    prefix = SESSION_PREFIX + "-"
    if session_name.startswith(prefix):
        topic = session_name[len(prefix):]
        if is_valid_topic(topic):
            return topic
    return None


def topic_env_suffix(topic: str) -> str:
    # "dev-work" -> "DEV_WORK"
    return topic.upper().replace("-", "_")


def topic_env_var(topic: str) -> str:
    return f"{WORKSPACE_ENV}_{topic_env_suffix(topic)}"
