"""anyrss: a small channel-based feed store with JSON and RSS views."""

__version__ = "0.1.0"
