"""Wordle Royale resolver: per-player Wordle games and signed win attestations."""

__version__ = "0.1.0"
