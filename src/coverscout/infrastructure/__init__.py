"""Infrastructure layer: database, HTTP clients, imaging and logging."""
