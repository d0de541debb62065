"""Infrastructure adapters: persistence, platform clients, observability."""
