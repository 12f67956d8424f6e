"""
Thread projection.

Messages are grouped into display threads by a subject key. The key is derived
once when a message is created (see `derive_subject`) and stored on the row;
`project_threads` falls back to deriving it from content for rows that lack one.
The projection is a pure function of its input.
"""
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Optional

from shared.utils.constants import SUBJECT_KEY_MAX_CHARS, THREAD_PREVIEW_MAX_CHARS

SUBJECT_PREFIX = "Subject:"
NO_SUBJECT = "(no subject)"

_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class Subject:
    display: str
    key: str


@dataclass
class Thread:
    subject: str
    key: str
    preview: str
    last_message_at: datetime
    message_ids: list[str] = field(default_factory=list)

    @property
    def message_count(self) -> int:
        return len(self.message_ids)


def normalize_key(text: str) -> str:
    """Case-insensitive, whitespace-trimmed grouping key."""
    return _WHITESPACE.sub(" ", text.strip()).lower()


def subject_line(content: str) -> Optional[str]:
    """Return the full leading `Subject: ...` line, or None."""
    stripped = (content or "").lstrip()
    if not stripped.startswith(SUBJECT_PREFIX):
        return None
    return stripped.split("\n", 1)[0].rstrip()


def strip_subject_line(content: str) -> str:
    """Message body with any leading `Subject:` line (and following blank lines) removed."""
    line = subject_line(content)
    if line is None:
        return (content or "").strip()
    remainder = (content or "").lstrip()[len(line):]
    return remainder.strip()


def _first_non_blank_line(text: str) -> Optional[str]:
    for line in (text or "").splitlines():
        if line.strip():
            return line.strip()
    return None


def derive_subject(content: str) -> Subject:
    """Subject for a message: explicit `Subject:` line, else the first non-blank line."""
    line = subject_line(content)
    if line is not None:
        display = line[len(SUBJECT_PREFIX):].strip()
        if display:
            return Subject(display=display, key=normalize_key(display))
        content = strip_subject_line(content)

    first = _first_non_blank_line(content)
    if first is None:
        return Subject(display=NO_SUBJECT, key=normalize_key(NO_SUBJECT))
    display = first[:SUBJECT_KEY_MAX_CHARS].rstrip()
    return Subject(display=display, key=normalize_key(display))


def ensure_subject(original_content: str, new_content: str) -> str:
    """Carry the original `Subject:` line over to edited content that dropped it."""
    original_line = subject_line(original_content)
    if original_line is None or subject_line(new_content) is not None:
        return new_content
    return f"{original_line}\n\n{new_content.strip()}"


def with_subject(subject: str, body: str) -> str:
    """Prefix a body with a `Subject:` line unless it already has one."""
    if subject_line(body) is not None:
        return body
    return f"{SUBJECT_PREFIX} {subject}\n\n{body.strip()}"


def _preview(content: str) -> str:
    body = _WHITESPACE.sub(" ", strip_subject_line(content))
    if len(body) <= THREAD_PREVIEW_MAX_CHARS:
        return body
    return body[:THREAD_PREVIEW_MAX_CHARS].rstrip() + "..."


def project_threads(messages: Iterable) -> list[Thread]:
    """
    Group messages into threads.

    Args:
        messages: objects with `id`, `content`, `created_at` and optionally
            `thread_key` / `subject`

    Returns:
        Threads ordered by most recent message, newest first
    """
    ordered = sorted(messages, key=lambda m: (m.created_at, m.id))
    threads: dict[str, Thread] = {}

    for message in ordered:
        stored_key = getattr(message, "thread_key", None)
        stored_subject = getattr(message, "subject", None)
        if stored_key:
            subject = Subject(display=stored_subject or stored_key, key=stored_key)
        else:
            subject = derive_subject(message.content)

        thread = threads.get(subject.key)
        if thread is None:
            thread = Thread(
                subject=subject.display,
                key=subject.key,
                preview="",
                last_message_at=message.created_at,
            )
            threads[subject.key] = thread

        thread.message_ids.append(message.id)
        thread.last_message_at = message.created_at
        thread.preview = _preview(message.content)

    return sorted(threads.values(), key=lambda t: (t.last_message_at, t.key), reverse=True)
