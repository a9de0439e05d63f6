"""WCProxy: cached Google webcache proxy."""

__version__ = "1.0.0"
