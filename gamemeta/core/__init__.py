"""Core Application Layer: orchestrates commands against the infrastructure."""
