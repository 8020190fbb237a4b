"""Infrastructure layer: HTTP clients, persistence, observability, lifecycle."""
