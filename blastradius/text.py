"""Requirement-text tokenisation, ambiguity detection and PRD text helpers.

All functions here are pure: they take strings and return new values.
"""

from __future__ import annotations

import hashlib
import re
from typing import Iterable, List

STOP_WORDS = frozenset(
    """
    the a an and or but in on at to for of with by from is are was were be been
    being have has had do does did will would could should may might shall can
    need must this that these those it its we our you your they their he she as
    if not no so then than when where which who how what why all any each every
    both few more most other some such into through during before after above
    below between out up down also very just about only well new same get use
    used using make made per via etc
    """.split()
)

AMBIGUITY_SIGNALS = [
    "should",
    "maybe",
    "tbd",
    "tba",
    "unknown",
    "unclear",
    "perhaps",
    "possibly",
    "to be decided",
    "to be determined",
    "to be confirmed",
    "tbc",
    "n/a",
    "?",
]

_STRIP_CHARS = re.compile(r"[`'\"()\[\]{}<>]")
_SPLIT = re.compile(r"[\s,;:.!?\-/\\|@#$%^&*+=~]+")

_CODE_PATTERNS = [
    re.compile(r"\b[A-Z][a-zA-Z0-9]{2,}\b"),  # PascalCase
    re.compile(r"\b[a-z][a-zA-Z0-9]{2,}[A-Z][a-zA-Z0-9]*\b"),  # camelCase
    re.compile(r"\b[a-z][a-z0-9]+_[a-z][a-z0-9_]+\b"),  # snake_case
    re.compile(r"\b[A-Z][A-Z0-9_]{2,}\b"),  # SCREAMING_SNAKE
]

_CRITERIA_HINT = re.compile(r"\b(must|should|shall|required|needs to)\b", re.IGNORECASE)
_BULLET = re.compile(r"^[-*•]\s+")
_NUMBERED = re.compile(r"^\d+[.)]\s+")
_CRITERIA_HEADING = re.compile(r"^acceptance criteria[:\s]", re.IGNORECASE)

MAX_ACCEPTANCE_CRITERIA = 12
PRD_SUMMARY_CHARS = 400


def _unique(items: Iterable[str]) -> List[str]:
    seen = set()
    result = []
    for item in items:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result


def tokenize(text: str) -> List[str]:
    """Split text into lowercase word tokens, dropping stop words and 1-char tokens."""
    cleaned = _STRIP_CHARS.sub(" ", text)
    tokens = []
    for raw in _SPLIT.split(cleaned):
        token = raw.strip().lower()
        if len(token) >= 2 and token not in STOP_WORDS:
            tokens.append(token)
    return tokens


def extract_keywords(text: str) -> List[str]:
    return _unique(tokenize(text))


def extract_code_tokens(text: str) -> List[str]:
    """Find identifier-shaped words (PascalCase, camelCase, snake_case, SCREAMING_SNAKE).

    Case is preserved; callers lowercase when building match sets.
    """
    found: List[str] = []
    for pattern in _CODE_PATTERNS:
        found.extend(pattern.findall(text))
    return _unique(found)


def extract_all_tokens(text: str) -> List[str]:
    return _unique(extract_keywords(text) + extract_code_tokens(text))


def token_set(text: str) -> List[str]:
    """Lowercased, deduplicated token list used for relevance matching."""
    return _unique(t.lower() for t in extract_all_tokens(text))


def detect_ambiguity_signals(text: str) -> List[str]:
    lower = text.lower()
    return [signal for signal in AMBIGUITY_SIGNALS if signal in lower]


def hash_text(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def normalize_whitespace(text: str) -> str:
    """Normalise line endings and collapse runs of blank lines."""
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def _unfence(match: "re.Match[str]") -> str:
    block = match.group(0)
    block = re.sub(r"^```[^\n]*\n", "", block, count=1)
    return re.sub(r"^```\s*$", "", block, count=1, flags=re.MULTILINE)


def strip_markdown(text: str) -> str:
    """Reduce Markdown to plain prose, keeping the contents of code fences."""
    text = re.sub(r"^```[\s\S]*?^```", _unfence, text, flags=re.MULTILINE)
    text = re.sub(r"`([^`]+)`", r"\1", text)
    text = re.sub(r"<[^>]+>", " ", text)
    text = re.sub(r"^#{1,6}\s+", "", text, flags=re.MULTILINE)
    text = re.sub(r"^>\s*", "", text, flags=re.MULTILINE)
    text = re.sub(r"^[-*_]{3,}\s*$", "", text, flags=re.MULTILINE)
    text = re.sub(r"[*_]{1,3}([^*_]+)[*_]{1,3}", r"\1", text)
    text = re.sub(r"!?\[([^\]]*)\]\([^)]*\)", r"\1", text)
    return re.sub(r"[ \t]+", " ", text)


def extract_acceptance_criteria(prd_text: str) -> List[str]:
    """Pull bullet items and requirement-like sentences out of PRD text.

    Args:
        prd_text: Normalised PRD text

    Returns:
        Up to 12 unique criteria, bullets first, in document order
    """
    normalized = normalize_whitespace(re.sub(r"[ \t]+", " ", prd_text))
    if not normalized:
        return []

    bullets = []
    for line in normalized.split("\n"):
        line = line.strip()
        if _BULLET.match(line) or _NUMBERED.match(line) or _CRITERIA_HEADING.match(line):
            item = _NUMBERED.sub("", _BULLET.sub("", line)).strip()
            if len(item) > 3:
                bullets.append(item)

    sentences = []
    for sentence in re.split(r"(?<=[.!?])\s+", normalized):
        sentence = sentence.strip()
        if _CRITERIA_HINT.search(sentence) and len(sentence) > 10:
            sentences.append(sentence)
    sentences = sentences[:10]

    return _unique(bullets + sentences)[:MAX_ACCEPTANCE_CRITERIA]


def prd_summary(prd_text: str) -> str:
    clean = re.sub(r"\s+", " ", prd_text).strip()
    if len(clean) > PRD_SUMMARY_CHARS:
        return clean[: PRD_SUMMARY_CHARS - 3] + "…"
    return clean



def extract_prd_title(raw_text: str) -> str:
    """Return the first Markdown heading, or the first non-empty line."""
    for line in raw_text.splitlines():
        stripped = line.strip()
        if not stripped:
            continue
        heading = re.match(r"^#{1,6}\s+(.*)$", stripped)
        if heading:
            return heading.group(1).strip()
        return stripped[:120]
    return ""
