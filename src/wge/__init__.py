"""Analytics and decision engine for municipal waste governance."""

__version__ = "0.1.0"
