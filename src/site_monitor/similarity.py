"""Text similarity measure used to quantify page content drift."""

from typing import List

from rapidfuzz import fuzz

# Only the leading part of each text is compared
MAX_COMPARE_CHARS = 50000
SIGNIFICANT_CHANGE_THRESHOLD = 10.0


def _tokens(text: str) -> List[str]:
    return (text or '')[:MAX_COMPARE_CHARS].split()


def similarity_percent(old_text: str, new_text: str) -> float:
    """
    Symmetric similarity of two texts in percent.

    Normalized Indel (LCS based) similarity over word tokens, so whitespace
    differences are ignored and argument order does not matter.
    """
    old_tokens = _tokens(old_text)
    new_tokens = _tokens(new_text)

    if not old_tokens and not new_tokens:
        return 100.0
    if not old_tokens or not new_tokens:
        return 0.0

    return fuzz.ratio(old_tokens, new_tokens)


def change_percent(old_text: str, new_text: str) -> float:
    """Percentage of content that changed, rounded to 2 decimals."""
    return max(0.0, round(100.0 - similarity_percent(old_text, new_text), 2))


def is_significant(percent: float) -> bool:
    return percent > SIGNIFICANT_CHANGE_THRESHOLD
