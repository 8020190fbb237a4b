"""Domain layer: entities, ports, exceptions and pure status logic."""
