"""Bundled fallback word bank.

Shown to players only when the local cache is empty after a sync attempt
(first launch while offline, or nothing authored yet). It is never written
into the cache, so the first successful sync simply supersedes it.
"""

from typing import Dict, List

from wordsync.types import LocalCache

FALLBACK_VERSION = 1

FALLBACK_THEMES: List[str] = ["Animals", "Food", "Space", "Sports", "Mythology"]

FALLBACK_BANK: Dict[str, List[str]] = {
    "Animals": [
        "cat", "dog", "lion", "bear", "wolf", "tiger", "zebra", "shark",
        "snake", "whale", "camel", "mouse", "panda", "rhino", "eagle",
    ],
    "Food": [
        "meat", "milk", "egg", "rice", "fish", "bread", "apple", "cheese",
        "butter", "onion", "pizza", "sugar", "grape", "lemon", "spice",
    ],
    "Space": [
        "star", "moon", "mars", "venus", "earth", "orbit", "nova", "comet",
        "galaxy", "rocket", "planet", "cosmos", "asteroid", "neptune", "uranus",
    ],
    "Sports": [
        "golf", "tennis", "rugby", "cricket", "boxing", "hockey", "soccer", "cycling",
        "skiing", "rowing", "wrestle", "karate", "judo", "surfing", "archery",
    ],
    "Mythology": [
        "zeus", "hera", "odin", "thor", "loki", "apollo", "ares", "poseidon",
        "hades", "freya", "atlas", "hermes", "nike", "gaia", "eros",
    ],
}  # fmt: skip


def fallback_cache() -> LocalCache:
    """A fresh ``LocalCache`` holding the bundled word bank.

    Each call returns new lists, so callers may mutate the result freely.
    """
    return LocalCache(
        themes=list(FALLBACK_THEMES),
        bank={theme: list(FALLBACK_BANK[theme]) for theme in FALLBACK_THEMES},
        versions={theme: FALLBACK_VERSION for theme in FALLBACK_THEMES},
        challenges=[],
    )


def playable_cache(cache: LocalCache) -> LocalCache:
    """``cache`` if it has any stage themes, otherwise the fallback bank."""
    return cache if not cache.is_empty else fallback_cache()
