"""Sync adapters: filesystem watching for the inbox."""

from .watchdog_watcher import InboxWatcher, SettleTracker

__all__ = ["InboxWatcher", "SettleTracker"]
