"""Domain models (value objects and enumerations)."""
