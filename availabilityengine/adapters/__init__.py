"""
Adapters layer - Snapshot sources for time-off and appointments.
"""

from .snapshot_provider import SnapshotProvider

__all__ = ["SnapshotProvider"]
