"""HTTP adapters for the storage engine."""
