"""Sync feature: inbox import, refresh and reconciliation of the library tree."""
