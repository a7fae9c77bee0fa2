"""Domain layer: entities, roles and error taxonomy."""
