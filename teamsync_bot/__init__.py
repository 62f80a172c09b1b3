"""Core package for the Slack channel to GitHub team sync.

This module exposes the main entry points so that consumers of the package
can simply import them from ``teamsync_bot``.
"""

from .config import Settings, load_settings
from .core.models import ChannelTeamMapping, ReconciliationOutcome, SheetMapping
from .services.handlers import EventHandlers
from .services.membership import MembershipService
from .services.reconciler import Reconciler

__all__ = [
    "ChannelTeamMapping",
    "EventHandlers",
    "MembershipService",
    "ReconciliationOutcome",
    "Reconciler",
    "Settings",
    "SheetMapping",
    "load_settings",
]
