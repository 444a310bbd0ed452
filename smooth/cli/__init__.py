"""Command-line interface for Smooth."""
