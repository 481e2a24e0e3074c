"""Console output for the tree commands.

Status lines start with a one-character marker so they stay readable when
colour is stripped (pipes, CI logs). Rendered tree rows are echoed without
styling so they can be diffed or piped.
"""

from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

import click

if TYPE_CHECKING:
    from hierarchy_store.core.database.hierarchy import TreeViolation

# kind -> (marker, colour)
_STATUS_STYLES = {
    "success": ("✓", "green"),
    "error": ("✗", "red"),
    "warning": ("⚠", "yellow"),
    "info": ("ℹ", "blue"),
}


def _status(kind: str, message: str, *, err: bool = False) -> None:
    marker, colour = _STATUS_STYLES[kind]
    click.secho(f"{marker} {message}", fg=colour, err=err)


def success(message: str) -> None:
    _status("success", message)


def error(message: str) -> None:
    """Print an error line on stderr."""
    _status("error", message, err=True)


def warning(message: str) -> None:
    _status("warning", message)


def info(message: str) -> None:
    _status("info", message)


def header(message: str) -> None:
    """Print a bold heading preceded by a blank line."""
    click.secho(f"\n{message}", fg="cyan", bold=True)


def echo_tree(lines: Mapping[Any, str]) -> None:
    """Print ``NestedSetTree.visualise()`` output, one row per line."""
    for line in lines.values():
        click.echo(line)


def violation_report(table_name: str, violations: Iterable["TreeViolation"]) -> None:
    """Print a heading and one ``node <id>: [kind] detail`` line per violation."""
    violations = list(violations)
    header(f"{len(violations)} problem(s) in {table_name!r}")
    for violation in violations:
        click.echo(f"  node {violation.node_id!r}: [{violation.kind}] {violation.detail}")
