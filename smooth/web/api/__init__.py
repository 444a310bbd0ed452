"""JSON API for the browser UI."""
