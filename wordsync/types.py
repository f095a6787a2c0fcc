"""
Shared types for wordsync.

All content dataclasses live here: the remote ``ContentItem``, the on-device
``LocalCache`` snapshot, queued ``PendingAction`` records, and the result
types the sync engine and facade report through. Every type that is
persisted knows how to turn itself into a plain dict and back, and the
``from_dict`` constructors never raise on malformed input; missing or
unparsable fields fall back to their empty value.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Union

# Current layout of the persisted cache blob. Bumped together with a
# migration in wordsync.storage.cache_store.
CACHE_SCHEMA_VERSION = 1


# === Shared Utility Functions ===


def utc_now() -> str:
    """Get current timestamp as ISO string in UTC."""
    return datetime.now(timezone.utc).isoformat()


def _as_str_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [w for w in value if isinstance(w, str)]


def _as_version(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.isdigit():
        return int(value)
    return 0


def _as_optional_str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) and value else None


# === Enums ===


class ContentKind(str, Enum):
    """Kind of a word set. Values match the remote ``kind`` column."""

    STAGE = "Stage"
    CHALLENGE = "Challenge"


# Canonical set of valid kind strings, derived from the enum.
VALID_KIND_VALUES = frozenset(k.value for k in ContentKind)


class PendingIntent(str, Enum):
    """What a queued action will do when replayed."""

    SAVE = "save"
    DELETE = "delete"


class SaveStatus(str, Enum):
    """Outcome of a facade save/delete."""

    SYNCED = "synced"  # Remote committed and local cache updated
    QUEUED = "queued"  # Remote failed, action queued for the next sync
    LOCAL_WRITE_FAILED = "local_write_failed"  # Remote committed, cache write failed
    FAILED = "failed"  # Remote failed and the action could not be queued


# === Content Types ===


@dataclass
class ContentItem:
    """One word set as stored remotely.

    The remote table names its key column ``theme`` for both kinds, so
    ``from_row``/``to_row`` translate between that and ``name``.
    """

    name: str
    kind: ContentKind
    words: List[str] = field(default_factory=list)
    version: int = 1
    active_from: Optional[str] = None
    active_to: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "ContentItem":
        """Build from a remote row.

        Raises:
            ValueError: If the row has no name, an unknown kind, or a
                non-list ``words`` value.
        """
        name = row.get("theme") or row.get("name")
        if not isinstance(name, str) or not name:
            raise ValueError(f"Row has no theme name: {row!r}")
        kind = ContentKind(row.get("kind"))
        words = row.get("words")
        if not isinstance(words, list):
            raise ValueError(f"Row {name!r} has no word list")
        return cls(
            name=name,
            kind=kind,
            words=[str(w) for w in words],
            version=_as_version(row.get("version")),
            active_from=_as_optional_str(row.get("active_from")),
            active_to=_as_optional_str(row.get("active_to")),
            updated_at=_as_optional_str(row.get("updated_at")),
        )

    def to_row(self) -> Dict[str, Any]:
        """Payload for a remote upsert."""
        row: Dict[str, Any] = {
            "theme": self.name,
            "words": list(self.words),
            "kind": self.kind.value,
            "version": self.version,
            "updated_at": self.updated_at or utc_now(),
        }
        if self.kind == ContentKind.CHALLENGE:
            row["active_from"] = self.active_from
            row["active_to"] = self.active_to
        return row


@dataclass
class ChallengeEntry:
    """A challenge as held in the local cache."""

    name: str
    words: List[str] = field(default_factory=list)
    version: int = 0
    active_from: Optional[str] = None
    active_to: Optional[str] = None

    @classmethod
    def from_item(cls, item: ContentItem) -> "ChallengeEntry":
        return cls(
            name=item.name,
            words=list(item.words),
            version=item.version,
            active_from=item.active_from,
            active_to=item.active_to,
        )

    @classmethod
    def from_dict(cls, data: Any) -> Optional["ChallengeEntry"]:
        if not isinstance(data, dict):
            return None
        name = data.get("name")
        if not isinstance(name, str) or not name:
            return None
        return cls(
            name=name,
            words=_as_str_list(data.get("words")),
            version=_as_version(data.get("version")),
            active_from=_as_optional_str(data.get("active_from")),
            active_to=_as_optional_str(data.get("active_to")),
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "name": self.name,
            "words": list(self.words),
            "version": self.version,
        }
        if self.active_from is not None:
            data["active_from"] = self.active_from
        if self.active_to is not None:
            data["active_to"] = self.active_to
        return data

    def is_active(self, today: Union[date, str, None] = None) -> bool:
        """Whether ``today`` falls inside the inclusive activity window.

        A challenge missing either bound is always active.
        """
        if not self.active_from or not self.active_to:
            return True
        if today is None:
            today = datetime.now(timezone.utc).date()
        day = (today.isoformat() if isinstance(today, date) else str(today))[:10]
        return self.active_from[:10] <= day <= self.active_to[:10]


@dataclass
class LocalCache:
    """The on-device materialized view of all synced content.

    ``themes``, ``bank`` and ``versions`` always share one key set after a
    completed mutation; use ``put_stage``/``drop_stage`` to keep it that way.
    """

    themes: List[str] = field(default_factory=list)
    bank: Dict[str, List[str]] = field(default_factory=dict)
    versions: Dict[str, int] = field(default_factory=dict)
    challenges: List[ChallengeEntry] = field(default_factory=list)
    schema_version: int = CACHE_SCHEMA_VERSION

    @classmethod
    def from_dict(cls, data: Any) -> "LocalCache":
        if not isinstance(data, dict):
            return cls()

        themes = _as_str_list(data.get("themes"))
        raw_bank = data.get("bank") if isinstance(data.get("bank"), dict) else {}
        raw_versions = data.get("versions") if isinstance(data.get("versions"), dict) else {}
        raw_challenges = data.get("challenges") if isinstance(data.get("challenges"), list) else []

        challenges = []
        for entry in raw_challenges:
            challenge = ChallengeEntry.from_dict(entry)
            if challenge is not None:
                challenges.append(challenge)

        return cls(
            themes=list(dict.fromkeys(themes)),
            bank={k: _as_str_list(v) for k, v in raw_bank.items() if isinstance(k, str)},
            versions={k: _as_version(v) for k, v in raw_versions.items() if isinstance(k, str)},
            challenges=challenges,
            schema_version=_as_version(data.get("schema_version")) or CACHE_SCHEMA_VERSION,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "schema_version": self.schema_version,
            "themes": list(self.themes),
            "bank": {k: list(v) for k, v in self.bank.items()},
            "versions": dict(self.versions),
            "challenges": [c.to_dict() for c in self.challenges],
        }

    @property
    def is_empty(self) -> bool:
        return len(self.themes) == 0

    def version_of(self, name: str, kind: ContentKind) -> int:
        """Locally known version for ``(name, kind)``, 0 when absent."""
        if kind == ContentKind.STAGE:
            return self.versions.get(name, 0)
        challenge = self.find_challenge(name)
        return challenge.version if challenge else 0

    def find_challenge(self, name: str) -> Optional[ChallengeEntry]:
        for challenge in self.challenges:
            if challenge.name == name:
                return challenge
        return None

    def put_stage(self, name: str, words: List[str], version: int) -> None:
        self.bank[name] = list(words)
        self.versions[name] = version
        if name not in self.themes:
            self.themes.append(name)

    def drop_stage(self, name: str) -> bool:
        """Remove a stage from all three maps. Returns True if it was present."""
        present = name in self.themes or name in self.bank or name in self.versions
        self.themes = [t for t in self.themes if t != name]
        self.bank.pop(name, None)
        self.versions.pop(name, None)
        return present

    def put_challenge(self, entry: ChallengeEntry) -> None:
        """Upsert a challenge by name, keeping its list position."""
        for i, existing in enumerate(self.challenges):
            if existing.name == entry.name:
                self.challenges[i] = entry
                return
        self.challenges.append(entry)

    def drop_challenge(self, name: str) -> bool:
        before = len(self.challenges)
        self.challenges = [c for c in self.challenges if c.name != name]
        return len(self.challenges) != before


@dataclass
class PendingAction:
    """A local mutation waiting for a successful remote commit.

    ``timestamp`` is diagnostic only; replay order is queue order.
    """

    intent: PendingIntent
    name: str
    kind: ContentKind = ContentKind.STAGE
    words: Optional[List[str]] = None
    active_from: Optional[str] = None
    active_to: Optional[str] = None
    timestamp: str = field(default_factory=utc_now)

    @classmethod
    def from_dict(cls, data: Any) -> Optional["PendingAction"]:
        """Parse a stored action. Returns None for records that cannot be replayed."""
        if not isinstance(data, dict):
            return None
        name = data.get("name") or data.get("theme")
        if not isinstance(name, str) or not name:
            return None
        try:
            intent = PendingIntent(data.get("intent"))
            kind = ContentKind(data.get("kind") or ContentKind.STAGE.value)
        except ValueError:
            return None
        words = data.get("words")
        if intent == PendingIntent.SAVE and not isinstance(words, list):
            return None
        return cls(
            intent=intent,
            name=name,
            kind=kind,
            words=_as_str_list(words) if words is not None else None,
            active_from=_as_optional_str(data.get("active_from")),
            active_to=_as_optional_str(data.get("active_to")),
            timestamp=_as_optional_str(data.get("timestamp")) or "",
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "intent": self.intent.value,
            "name": self.name,
            "kind": self.kind.value,
            "timestamp": self.timestamp,
        }
        if self.intent == PendingIntent.SAVE:
            data["words"] = list(self.words or [])
            if self.active_from is not None:
                data["active_from"] = self.active_from
            if self.active_to is not None:
                data["active_to"] = self.active_to
        return data


# === Result Types ===


@dataclass
class RemoteOutcome:
    """Result of one remote call: either a value or the reason it failed."""

    ok: bool
    value: Any = None
    error: Optional[str] = None

    @classmethod
    def success(cls, value: Any = None) -> "RemoteOutcome":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: str) -> "RemoteOutcome":
        return cls(ok=False, error=error)


@dataclass
class SaveOutcome:
    """What a facade save/delete did, plus a notice suitable for display."""

    status: SaveStatus
    name: str
    kind: ContentKind
    version: Optional[int] = None
    message: str = ""

    @property
    def committed(self) -> bool:
        """True when the remote service accepted the change."""
        return self.status in (SaveStatus.SYNCED, SaveStatus.LOCAL_WRITE_FAILED)


@dataclass
class SyncResult:
    """Result of one reconciliation pass.

    Informational only: the authoritative outcome is the state the pass
    leaves behind in the cache, the queue and the last-sync marker.
    """

    flushed: int = 0  # Pending actions replayed successfully
    still_pending: int = 0  # Pending actions left in the queue
    pulled: int = 0  # Stage items updated from remote
    removed: int = 0  # Stage themes purged because remote no longer has them
    challenges: int = 0  # Challenges in the cache after the pass
    fetched: bool = False  # Pull phase completed without a fetch error
    cache_written: bool = False
    errors: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return len(self.errors) == 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "flushed": self.flushed,
            "still_pending": self.still_pending,
            "pulled": self.pulled,
            "removed": self.removed,
            "challenges": self.challenges,
            "fetched": self.fetched,
            "cache_written": self.cache_written,
            "errors": list(self.errors),
            "success": self.success,
        }
