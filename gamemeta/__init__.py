"""gamemeta: resilient client for a rate-limited game metadata API.

Fetches structured records (games, platforms, cover art) and caches image
assets on disk for a local game library.
"""

__version__ = "0.1.0"
