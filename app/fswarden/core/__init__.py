"""Application configuration and XDG paths."""
