"""Directory lookup, agency resolution and request composition services."""
