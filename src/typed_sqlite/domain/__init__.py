"""Domain layer: value objects, entities, errors and conversion services."""
