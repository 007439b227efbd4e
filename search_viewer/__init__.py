"""Interactive viewer core over very large, lazily enriched search results."""
