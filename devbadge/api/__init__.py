"""FastAPI dashboard for per-guild configuration."""
