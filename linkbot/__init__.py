"""Link preview pipeline for chat bots."""

__version__ = "0.1.0"
