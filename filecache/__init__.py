"""Local metadata cache for a remote file synchronization client."""

__version__ = "0.1.0"
