"""
Services package - synchronization of Vault resources into Secrets.

Contains:
- Change detection and Secret projection
- The shared fetch-compare-write sequence
- Event-driven and periodic entry points
"""

from .change_detector import fingerprint, refresh_is_needed
from .event_handler import EventHandler
from .refresh_scheduler import RefreshCycleReport, RefreshScheduler
from .registry import ResourceRegistry
from .secret_projector import SecretProjector
from .synchronizer import SecretSynchronizer, SyncOutcome

__all__ = [
    "EventHandler",
    "RefreshCycleReport",
    "RefreshScheduler",
    "ResourceRegistry",
    "SecretProjector",
    "SecretSynchronizer",
    "SyncOutcome",
    "fingerprint",
    "refresh_is_needed",
]
