"""reviewstream - live, deduplicated code review of repository branches."""

__version__ = "0.1.0"
