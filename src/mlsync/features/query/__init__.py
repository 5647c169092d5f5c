"""Query feature: the bang-expression language over the metadata index."""
