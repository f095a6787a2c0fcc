"""Command-line interface for wordsync."""
