"""Command-line interface for ai-comments."""
