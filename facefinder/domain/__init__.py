"""Domain layer: entities, value objects, interfaces and the similarity engine."""
