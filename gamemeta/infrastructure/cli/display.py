import dataclasses
import json
import logging
from typing import Any, Dict, List, Sequence

from rich.console import Console
from rich.table import Table

from gamemeta.domain.interfaces.user_interface import UserInterface

logger = logging.getLogger(__name__)


def _to_jsonable(record: Any) -> Any:
    if dataclasses.is_dataclass(record) and not isinstance(record, type):
        return dataclasses.asdict(record)
    return record


class ConsoleDisplay(UserInterface):
    """Concrete implementation of UserInterface using the rich library for console output."""

    def __init__(self, console: Console = None):
        self._console = console or Console()

    @property
    def console(self) -> Console:
        """Get the Rich console instance for direct operations."""
        return self._console

    @console.setter
    def console(self, value: Console) -> None:
        self._console = value

    def display_records(self, records: List[Any], **kwargs: Any) -> None:
        """Prints records as pretty JSON (raw dicts or dataclasses)."""
        title = kwargs.get("title")
        if title:
            self._console.print(f"[bold]{title}[/bold] ({len(records)} record(s))")
        payload = json.dumps([_to_jsonable(r) for r in records], indent=2, ensure_ascii=False, default=str)
        self._console.print_json(payload)

    def display_table(self, title: str, columns: Sequence[str], rows: List[Sequence[Any]]) -> None:
        table = Table(title=title, show_lines=False)
        for column in columns:
            table.add_column(column)
        for row in rows:
            table.add_row(*(str(cell) for cell in row))
        self._console.print(table)

    def display_key_values(self, title: str, values: Dict[str, Any]) -> None:
        self.display_table(title, ["Key", "Value"], [(k, v) for k, v in values.items()])

    def display_output(self, output: str, **kwargs: Any) -> None:
        # No markup: paths may contain brackets
        self._console.print(output, markup=False, highlight=False, soft_wrap=True)

    def display_error(self, error_message: str, **kwargs: Any) -> None:
        self._console.print(f"[bold red]Error:[/bold red] {error_message}")

    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        self._console.print(f"[bold yellow]Warning:[/bold yellow] {warning_message}")

    def display_info(self, info_message: str, **kwargs: Any) -> None:
        self._console.print(f"[blue]Info:[/blue] {info_message}")
