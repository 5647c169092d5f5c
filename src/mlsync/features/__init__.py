"""Feature slices (metadata, validation, path, index, query, sync)."""
