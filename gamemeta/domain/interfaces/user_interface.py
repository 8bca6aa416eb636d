"""Interface for interacting with the user (output only).

Defines the contract for displaying records, paths, tables, errors and
informational messages, allowing different UI implementations.
"""

import abc
from typing import Any, Dict, List, Sequence


class UserInterface(abc.ABC):
    """Abstract Base Class for user interaction."""

    @abc.abstractmethod
    def display_records(self, records: List[Any], **kwargs: Any) -> None:
        """Displays query results to the user.

        Args:
            records: Raw dicts or typed records returned by a query.
            **kwargs: Additional arguments for formatting (e.g., title).
        """
        pass

    @abc.abstractmethod
    def display_table(self, title: str, columns: Sequence[str], rows: List[Sequence[Any]]) -> None:
        """Displays tabular data."""
        pass

    @abc.abstractmethod
    def display_key_values(self, title: str, values: Dict[str, Any]) -> None:
        """Displays a small key/value summary."""
        pass

    @abc.abstractmethod
    def display_output(self, output: str, **kwargs: Any) -> None:
        """Displays plain output (e.g. a resolved file path)."""
        pass

    @abc.abstractmethod
    def display_error(self, error_message: str, **kwargs: Any) -> None:
        """Displays an error message to the user."""
        pass

    @abc.abstractmethod
    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        """Displays a warning message to the user."""
        pass

    @abc.abstractmethod
    def display_info(self, info_message: str, **kwargs: Any) -> None:
        """Displays an informational message to the user."""
        pass
