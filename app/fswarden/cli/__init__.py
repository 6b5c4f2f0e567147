"""Command-line interface for fswarden."""
