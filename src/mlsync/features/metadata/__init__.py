"""Metadata feature: tag extraction and content identity."""
