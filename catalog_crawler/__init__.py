"""Rate-limit aware crawler for paginated catalog APIs."""

__version__ = "0.1.0"
