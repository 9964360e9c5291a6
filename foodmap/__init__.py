"""Food Map: restaurant listings and reviews client."""

__version__ = "0.1.0"
