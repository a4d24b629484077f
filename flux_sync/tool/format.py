"""Library for formatting command output."""

from abc import ABC, abstractmethod
from collections.abc import Generator
import json
import sys
from typing import Any, TextIO

import yaml

PADDING = 4


def format_columns(
    headers: list[str], rows: list[list[str]]
) -> Generator[str, None, None]:
    """Yield the rows aligned on the widest value of each column."""
    data = [headers] + rows
    widths = [max(len(row[i]) for row in data) for i in range(len(headers))]
    for row in data:
        yield "".join(
            value.ljust(width + PADDING) for value, width in zip(row, widths)
        ).rstrip()


class PrintFormatter:
    """A formatter that prints human readable console output."""

    def __init__(self, keys: list[str]) -> None:
        """Initialize the PrintFormatter with the keys to print."""
        self._keys = keys

    def format(self, data: list[dict[str, Any]]) -> Generator[str, None, None]:
        """Format the data objects as a table."""
        if not data:
            return
        rows = [[str(row.get(key, "")) for key in self._keys] for row in data]
        yield from format_columns([key.upper() for key in self._keys], rows)

    def print(self, data: list[dict[str, Any]], file: TextIO = sys.stdout) -> None:
        """Output the data objects."""
        for line in self.format(data):
            print(line, file=file)


class StructFormatter(ABC):
    """A formatter that prints whole objects."""

    @abstractmethod
    def print(self, data: list[dict[str, Any]], file: TextIO = sys.stdout) -> None:
        """Print the data objects."""


class YamlFormatter(StructFormatter):
    """Prints each object as a separate yaml document."""

    def print(self, data: list[dict[str, Any]], file: TextIO = sys.stdout) -> None:
        print(
            yaml.dump_all(data, sort_keys=False, explicit_start=True), end="", file=file
        )


class JsonFormatter(StructFormatter):
    """Prints the objects as a json list."""

    def print(self, data: list[dict[str, Any]], file: TextIO = sys.stdout) -> None:
        json.dump(data, sort_keys=False, indent=4, fp=file, default=str)
        print(file=file)
