"""sesame: release orchestration for frontend projects."""

__version__ = "0.1.0"
