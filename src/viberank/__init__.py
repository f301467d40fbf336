"""Viberank: Claude Code usage leaderboard."""

__version__ = "0.1.0"
