"""Discord cogs loaded as extensions by DevBadgeBot."""
