"""Discord bot process: cogs, schedulers and the control server."""
