"""Core infrastructure shared by the capability synchronization engine."""

__all__ = [
    "capabilities",
    "device",
    "logging",
    "observable",
]
