"""Tests for the bundled fallback word bank."""

from wordsync.fallback import FALLBACK_BANK, FALLBACK_THEMES, fallback_cache, playable_cache
from wordsync.types import LocalCache
from wordsync.validation import validate_words


def test_every_theme_is_a_valid_word_set():
    assert set(FALLBACK_BANK) == set(FALLBACK_THEMES)
    for theme in FALLBACK_THEMES:
        assert validate_words(FALLBACK_BANK[theme]) == FALLBACK_BANK[theme]


def test_fallback_cache_is_version_one():
    cache = fallback_cache()
    assert cache.themes == FALLBACK_THEMES
    assert set(cache.versions.values()) == {1}
    assert cache.challenges == []


def test_fallback_cache_returns_fresh_copies():
    cache = fallback_cache()
    cache.bank["Animals"].append("dodo")
    cache.themes.clear()
    assert "dodo" not in FALLBACK_BANK["Animals"]
    assert fallback_cache().themes == FALLBACK_THEMES


def test_playable_cache_passes_through_real_content():
    cache = LocalCache()
    cache.put_stage("jungle", ["vine"], 2)
    assert playable_cache(cache) is cache


def test_playable_cache_substitutes_when_empty():
    assert playable_cache(LocalCache()).themes == FALLBACK_THEMES
