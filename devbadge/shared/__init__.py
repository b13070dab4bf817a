"""Code shared by the bot and the dashboard: models, JSON storage, caching."""
