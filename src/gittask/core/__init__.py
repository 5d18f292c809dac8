"""Core domain logic: object store, tasks, configuration, connectors and sync."""
