"""User interfaces for mlsync."""
