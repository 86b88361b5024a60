"""Domain layer: value objects, entities, ports and exceptions."""
