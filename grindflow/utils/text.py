"""Text normalization helpers for preparing extracted PDF text for prompts."""

import re
from collections import Counter
from typing import Optional

TRUNCATION_MARKER = "\n... [truncated]"

# Short lines (headers, footers, page numbers) are kept at most twice.
SHORT_LINE_MAX_LENGTH = 50
MAX_SHORT_LINE_REPEATS = 2

MIN_KEYWORD_MATCHES = 5

_LINE_BREAK = re.compile(r"\r?\n")
_WHITESPACE_RUN = re.compile(r"\s{2,}")
_HORIZONTAL_WHITESPACE_RUN = re.compile(r"[ \t]{2,}")
_BLANK_LINE_RUN = re.compile(r"\n{3,}")
_KEYWORD_SEPARATOR = re.compile(r"[,\s]+")


def normalize_for_prompt(raw: str) -> str:
    """Clean extracted PDF text before it is sent to the model.

    Whitespace is collapsed per line, empty lines are dropped and short
    lines that repeat (running headers, footers, page numbers) are kept at
    most twice. Running the function on its own output returns the same
    text.

    Args:
        raw: Raw text as extracted from the PDF

    Returns:
        Normalized text, or an empty string for empty input
    """
    if not raw:
        return ""

    seen: Counter = Counter()
    kept = []
    for line in _LINE_BREAK.split(raw):
        cleaned = _WHITESPACE_RUN.sub(" ", line).strip()
        if not cleaned:
            continue

        if len(cleaned) <= SHORT_LINE_MAX_LENGTH:
            key = cleaned.lower()
            seen[key] += 1
            if seen[key] > MAX_SHORT_LINE_REPEATS:
                continue

        kept.append(cleaned)

    text = "\n".join(kept)
    text = _HORIZONTAL_WHITESPACE_RUN.sub(" ", text)
    text = _BLANK_LINE_RUN.sub("\n\n", text)
    return text.strip()


def build_short_text(normalized: str, max_chars: int) -> str:
    """Cut text to a character budget, marking the cut.

    Args:
        normalized: Text to shorten, usually the output of normalize_for_prompt
        max_chars: Character budget

    Returns:
        The input unchanged if it fits, otherwise the first max_chars
        characters followed by the truncation marker
    """
    if not normalized:
        return ""
    if len(normalized) <= max_chars:
        return normalized
    return normalized[:max_chars] + TRUNCATION_MARKER


def keyword_focused_slice(text: str, keywords: Optional[str], max_lines: int) -> Optional[str]:
    """Keep only the lines mentioning one of the keywords.

    Args:
        text: Normalized document text
        keywords: Comma or whitespace separated keywords
        max_lines: Maximum number of matching lines to collect

    Returns:
        The matching lines joined by newlines, or None when no keywords were
        given or fewer than five lines matched
    """
    terms = [term.lower() for term in _KEYWORD_SEPARATOR.split(keywords or "") if term]
    if not terms or not text:
        return None

    matches = []
    for line in text.split("\n"):
        lowered = line.lower()
        if any(term in lowered for term in terms):
            matches.append(line)
            if len(matches) >= max_lines:
                break

    if len(matches) < MIN_KEYWORD_MATCHES:
        return None
    return "\n".join(matches)


def unescape_literal_controls(text: str) -> str:
    """Turn literal backslash sequences (``\\n``, ``\\t``, ``\\r``) into real characters.

    Models that double-escape their output leave these behind in free text.
    """
    if not text:
        return ""
    return text.replace("\\n", "\n").replace("\\t", "\t").replace("\\r", "\r")
