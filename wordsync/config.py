"""Configuration settings for wordsync."""

import os
from functools import lru_cache
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings

from wordsync.validation import validate_supabase_url

DEFAULT_DATA_DIR = Path.home() / ".wordsync"


def get_data_dir() -> Path:
    """Directory for the local store and logs.

    Read on every call so ``WORDSYNC_DATA_DIR`` can be changed at runtime.
    """
    override = os.environ.get("WORDSYNC_DATA_DIR")
    return Path(override).expanduser() if override else DEFAULT_DATA_DIR


class Settings(BaseSettings):
    """Settings loaded from ``WORDSYNC_*`` environment variables or ``.env``."""

    # Supabase
    supabase_url: str | None = None
    supabase_key: str | None = None  # Publishable (anon) key is enough for word_sets
    word_sets_table: str = "word_sets"
    feedback_table: str = "feedback"

    # Remote calls that take longer than this are treated as failures
    remote_timeout: float = 10.0

    # Local state
    data_dir: Path = DEFAULT_DATA_DIR
    db_filename: str = "wordsync.db"

    # Behaviour
    strict_validation: bool = False
    log_level: str = "INFO"

    class Config:
        env_prefix = "WORDSYNC_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @field_validator("supabase_url")
    @classmethod
    def _check_supabase_url(cls, value: str | None) -> str | None:
        if value is None:
            return None
        checked = validate_supabase_url(value)
        if checked is None:
            raise ValueError("supabase_url must be https (http only for localhost)")
        return checked

    @field_validator("remote_timeout")
    @classmethod
    def _check_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("remote_timeout must be positive")
        return value

    @property
    def has_remote(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)

    @property
    def db_path(self) -> Path:
        return Path(self.data_dir).expanduser() / self.db_filename


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings(data_dir=get_data_dir())
