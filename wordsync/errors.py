"""Error hierarchy for wordsync.

Only ``WordListValidationError`` is meant to reach callers of the public
facade; storage and remote failures are degraded to "keep prior state" or
"queue for later" at the component that observes them.
"""

from typing import List, Optional


class WordSyncError(Exception):
    """Base for all wordsync errors."""

    pass


class StorageError(WordSyncError):
    """Raised by the key-value substrate on read/write failures."""

    pass


class RemoteError(WordSyncError):
    """Raised by remote content services on any failed call.

    Network errors, API errors and timeouts are all folded into this one type
    so the sync engine has a single failure branch to handle.
    """

    def __init__(self, operation: str, message: str):
        self.operation = operation
        super().__init__(f"{operation} failed: {message}")


class WordListValidationError(WordSyncError, ValueError):
    """Raised when a word list or challenge window fails validation.

    ``problems`` holds one message per offending position (empty string for
    valid positions) when the failure is per-word, so an editing surface can
    mark individual fields.
    """

    def __init__(self, message: str, problems: Optional[List[str]] = None):
        self.problems = problems or []
        super().__init__(message)
