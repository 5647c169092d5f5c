"""Validation feature: accept or reject raw tag sets."""
