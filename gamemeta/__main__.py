"""Main entry point when executing gamemeta as a package.

This allows running the package using python -m gamemeta.
"""

from gamemeta.main import cli_entry_point

if __name__ == "__main__":
    cli_entry_point()
