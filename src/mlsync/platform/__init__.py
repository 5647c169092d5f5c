"""Infrastructure helpers: filesystem, logging, and persistence."""
