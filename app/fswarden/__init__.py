"""fswarden - restriction-aware filesystem traversal and cleanup."""

__version__ = "0.1.0"
