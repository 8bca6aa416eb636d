"""Domain Events: records of notable things happening while talking to
the metadata and image backends."""
