"""Tests for output formatting."""

import io

from flux_sync.tool.format import JsonFormatter, PrintFormatter, YamlFormatter


def test_print_formatter() -> None:
    """Test columns are aligned on the widest value."""
    output = io.StringIO()
    PrintFormatter(["name", "ready"]).print(
        [{"name": "apps", "ready": "True"}, {"name": "infrastructure", "ready": "False"}],
        file=output,
    )
    assert output.getvalue().splitlines() == [
        "NAME              READY",
        "apps              True",
        "infrastructure    False",
    ]


def test_print_formatter_empty() -> None:
    """Test nothing is printed without data."""
    output = io.StringIO()
    PrintFormatter(["name"]).print([], file=output)
    assert output.getvalue() == ""


def test_yaml_formatter() -> None:
    output = io.StringIO()
    YamlFormatter().print([{"name": "apps"}, {"name": "infra"}], file=output)
    assert output.getvalue() == "---\nname: apps\n---\nname: infra\n"


def test_json_formatter() -> None:
    output = io.StringIO()
    JsonFormatter().print([{"name": "apps"}], file=output)
    assert output.getvalue() == '[\n    {\n        "name": "apps"\n    }\n]\n'
