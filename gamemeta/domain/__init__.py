"""Domain Layer: value objects, enumerations, events, errors and the ports
the infrastructure layer implements."""
