"""Fietsroute - fietssport.nl toertocht to GPX converter with synchronized playback."""

import subprocess

from fietsroute.converter import RouteConverter
from fietsroute.playback import PlaybackSynchronizer

__all__ = ["PlaybackSynchronizer", "RouteConverter", "get_git_hash"]

__version__ = "0.3.0"
__version_date__ = "2026-10-17"


def get_git_hash() -> str:
    """Get the short git commit hash, or 'unknown' if not in a git repo."""
    try:
        result = subprocess.run(
            ["git", "rev-parse", "--short", "HEAD"],
            capture_output=True,
            text=True,
            timeout=5,
        )
        if result.returncode == 0:
            return result.stdout.strip()
    except (OSError, subprocess.SubprocessError):
        pass
    return "unknown"
