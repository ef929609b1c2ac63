"""Stream session monitor: polls a channel and stores per-broadcast statistics."""

__version__ = "0.1.0"
