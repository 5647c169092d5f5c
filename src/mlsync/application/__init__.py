"""Application layer: service contexts shared by every front end."""
