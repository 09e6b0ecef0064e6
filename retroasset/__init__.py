"""RetroArch asset server: local or proxied frontend, system and core assets."""

__version__ = "1.0.0"
