"""isupipe HTTP API (FastAPI)."""
