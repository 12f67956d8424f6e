"""Text helpers for student messages and agent replies."""
import re
from typing import Optional

from shared.utils.constants import ENDING_EXCITEMENT_MAX_WORDS, ENDING_SHORT_MAX_WORDS

_ACKNOWLEDGEMENTS = (
    r"sure|ok|okay|got it|will do|sounds good|perfect|great|thanks|thank you|bye|see you|talk later"
)

_EXCITEMENT_PATTERNS = [
    re.compile(
        r"^(sounds good|sure|ok|okay|perfect|great).*?"
        r"(i('m| am) (really )?(excited|looking forward)|excited to|looking forward)"
    ),
    re.compile(r"^(i('m| am) (really )?(excited|looking forward)|excited to|looking forward)"),
    re.compile(r"(excited|looking forward).*?(get started|begin|start|learn|dive in)"),
    re.compile(r"can't wait to (get started|begin|start|learn)"),
]

_BOLD = re.compile(r"\*\*(.+?)\*\*", re.DOTALL)
_ITALIC = re.compile(r"(?<![\w*])\*(?!\s)(.+?)(?<!\s)\*(?![\w*])")


def _short_patterns(mentor_name: Optional[str]) -> list[re.Pattern]:
    patterns = [re.compile(rf"^(?:(?:{_ACKNOWLEDGEMENTS})[\s,!.]*)+$")]
    if mentor_name:
        # "Dr. Raj" also matches "dr raj" and "dr.raj"
        name = r"\.?\s*".join(re.escape(part.rstrip(".")) for part in mentor_name.lower().split())
        patterns.append(re.compile(rf"^(?:(?:{_ACKNOWLEDGEMENTS})[\s,!.]*)+{name}[\s,!.]*$"))
    return patterns


def is_conversation_ending(content: str, mentor_name: Optional[str] = None) -> bool:
    """
    True for acknowledgements that need no reply ("thanks", "ok got it",
    "sounds good, looking forward to it"). Anything with a question mark is
    never an ending.
    """
    normalized = content.strip().lower()
    if not normalized or "?" in normalized:
        return False

    word_count = len(normalized.split())

    if word_count <= ENDING_SHORT_MAX_WORDS:
        if any(p.search(normalized) for p in _short_patterns(mentor_name)):
            return True

    if word_count <= ENDING_EXCITEMENT_MAX_WORDS:
        if any(p.search(normalized) for p in _EXCITEMENT_PATTERNS):
            return True

    return False


def strip_markdown_emphasis(text: str) -> str:
    """Remove **bold** and *italic* markers, keeping the words. Bullets are left alone."""
    text = _BOLD.sub(r"\1", text)
    return _ITALIC.sub(r"\1", text)
