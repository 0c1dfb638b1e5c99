"""Free/busy synchronization between an external calendar and an Exchange-style store."""

__version__ = "0.1.0"
