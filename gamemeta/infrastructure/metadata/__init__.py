"""Metadata backend adapters, one per MetadataSource."""
