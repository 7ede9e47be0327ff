"""Asset price sampling, alerting and hourly statistics service."""

__version__ = "0.1.0"
