"""Caching Infrastructure: disk-backed image cache with size fallback."""
