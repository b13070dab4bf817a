"""devbadge - Active Developer badge bot and its web dashboard"""

__version__ = "1.0.0"
