"""Input validation for wordsync.

Word-list and challenge-window rules used by editing surfaces before they
call ``WordSync.save_theme``. The facade only applies them itself when
strict validation is switched on.
"""

import logging
import re
from datetime import date
from typing import List, Optional, Sequence, Tuple
from urllib.parse import urlparse

from wordsync.errors import WordListValidationError

logger = logging.getLogger(__name__)

WORDS_PER_SET = 15
MIN_WORD_LENGTH = 3
MAX_WORD_LENGTH = 12

# Hosts allowed to serve the remote over plain http.
LOCAL_HOSTS = {"localhost", "127.0.0.1"}

_WORD_RE = re.compile(r"^[a-z]+$")


def normalize_words(words: Sequence[str]) -> List[str]:
    """Trim and lowercase every entry."""
    return [w.strip().lower() for w in words]


def validate_words(words: Sequence[str]) -> List[str]:
    """Validate a word list and return it normalized.

    Every entry is trimmed and lowercased first, then must be 3-12 letters
    a-z and distinct from the entries before it. Exactly 15 non-empty entries
    are required.

    Args:
        words: Candidate word list, typically raw input fields.

    Returns:
        The normalized list.

    Raises:
        WordListValidationError: With one message per position in
            ``problems`` when any entry is invalid.
    """
    if not isinstance(words, (list, tuple)):
        raise WordListValidationError("words must be a list of strings")
    if any(not isinstance(w, str) for w in words):
        raise WordListValidationError("words must be a list of strings")

    cleaned = normalize_words(words)
    non_empty = [w for w in cleaned if w]
    if len(non_empty) != WORDS_PER_SET:
        raise WordListValidationError(
            f"Please provide exactly {WORDS_PER_SET} words (got {len(non_empty)})"
        )

    problems = [""] * len(cleaned)
    seen = set()
    for index, word in enumerate(cleaned):
        if not word:
            problems[index] = "Required"
        elif len(word) < MIN_WORD_LENGTH or len(word) > MAX_WORD_LENGTH:
            problems[index] = f"{MIN_WORD_LENGTH}-{MAX_WORD_LENGTH} chars"
        elif not _WORD_RE.match(word):
            problems[index] = "Lowercase letters only"
        elif word in seen:
            problems[index] = "Duplicate"
        else:
            seen.add(word)

    if any(problems):
        bad = sum(1 for p in problems if p)
        raise WordListValidationError(f"{bad} invalid word(s)", problems)

    return cleaned


def _parse_iso_date(value: str, field_name: str) -> date:
    try:
        return date.fromisoformat(value[:10])
    except (TypeError, ValueError):
        raise WordListValidationError(f"{field_name} must be an ISO date (YYYY-MM-DD)") from None


def validate_active_window(
    active_from: Optional[str], active_to: Optional[str]
) -> Tuple[str, str]:
    """Validate a challenge activity window.

    Both dates are required and ``active_from`` must be strictly before
    ``active_to``.

    Returns:
        The two dates as ``YYYY-MM-DD`` strings.
    """
    if not active_from or not active_to:
        raise WordListValidationError("Please set active dates for the challenge")
    start = _parse_iso_date(active_from, "active_from")
    end = _parse_iso_date(active_to, "active_to")
    if start >= end:
        raise WordListValidationError("End date must be after start date")
    return start.isoformat(), end.isoformat()


def validate_supabase_url(url: str) -> Optional[str]:
    """Return the Supabase project URL without a trailing slash, or None if unusable.

    The anon key travels with every request, so plain http is only accepted
    for a local Supabase stack.
    """
    parsed = urlparse(url or "")
    if parsed.scheme == "https" and parsed.hostname:
        return url.rstrip("/")
    if parsed.scheme == "http" and parsed.hostname in LOCAL_HOSTS:
        return url.rstrip("/")
    logger.warning(f"Rejected supabase url {url!r}: expected https (http only for localhost)")
    return None
