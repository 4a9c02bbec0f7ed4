"""watchbot - turns new review and ticket feedback into task files."""

__version__ = "0.1.0"
