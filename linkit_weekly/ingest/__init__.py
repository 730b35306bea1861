"""Feed ingestion, source store, manual imports and web search."""
