"""Browser UI: FastAPI server, JSON API and static client."""
