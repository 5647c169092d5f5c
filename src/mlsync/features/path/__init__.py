"""Path feature: canonical path derivation for accepted tracks."""
