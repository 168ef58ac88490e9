"""unideploy - unified container deployment dispatcher."""

__version__ = "0.1.0"
