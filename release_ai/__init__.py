"""Release automation: git flow, version files, AI-assisted notes."""

__version__ = "1.0.0"
