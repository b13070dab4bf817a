"""Dashboard settings and request dependencies."""
