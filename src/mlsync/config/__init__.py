"""Configuration package: paths, persisted config, and fixed settings."""
