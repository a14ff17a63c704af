"""Domain layer: schema entities, value types, codec and error taxonomy."""
