"""Tree maintenance commands.

Every command works on the table named by TREE_TABLE_NAME (default
``categories``) in the database at DATABASE_URL.
Node ids are parsed as integers unless TREE_ID_TYPE=str.

Example:bash
    # Print the subtree under node 1, two levels deep
    hierarchy-store tree show 1 --max-depth 2

    # Report interval inconsistencies (exit code 1 if any)
    hierarchy-store tree check

    # Recompute every interval from parent_id, siblings by name
    hierarchy-store tree rebuild --sort

    # Re-parent node 7 under node 3, or make it a root
    hierarchy-store tree move 7 --to 3
    hierarchy-store tree move 7 --root
"""

import json
import sys
from dataclasses import asdict
from typing import Any

import click

from hierarchy_store.cli.utils import (
    coro,
    echo_tree,
    error,
    info,
    success,
    violation_report,
    warning,
)
from hierarchy_store.core.database.exceptions import RepositoryError
from hierarchy_store.core.database.hierarchy import find_violations
from hierarchy_store.core.settings import get_tree_settings


def _node_id(_ctx: click.Context, param: click.Parameter, value: str | None) -> Any:
    """Parse a node id as TREE_ID_TYPE says the key column is typed."""
    if value is None or get_tree_settings().id_type == "str":
        return value
    try:
        return int(value)
    except ValueError:
        raise click.BadParameter(
            f"{value!r} is not an integer (set TREE_ID_TYPE=str for string keys)",
            param=param,
        ) from None


@click.group(name="tree")
def tree() -> None:
    """Nested-set tree maintenance commands."""


@tree.command()
@click.argument("node_id", callback=_node_id)
@click.option(
    "--max-depth",
    default=0,
    show_default=True,
    type=click.IntRange(min=0),
    help="Levels below NODE_ID to include (0 = all)",
)
@click.option("--sort", is_flag=True, help="Order by materialized path instead of position")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format",
)
@coro
async def show(node_id: Any, max_depth: int, sort: bool, output_format: str) -> None:
    """Print the subtree rooted at NODE_ID."""
    from hierarchy_store.infra.database import build_tree, close_database, get_async_session

    try:
        async with get_async_session() as session:
            nested = build_tree(session)
            if output_format == "json":
                entries = await nested.get_tree(node_id, max_depth=max_depth, sort=sort)
                click.echo(json.dumps([asdict(entry) for entry in entries], indent=2, default=str))
                return
            lines = await nested.visualise(node_id, max_depth=max_depth, sort=sort)
    finally:
        await close_database()

    if not lines:
        warning(f"Node {node_id!r} is not positioned in {get_tree_settings().table_name!r}")
        return
    echo_tree(lines)


@tree.command()
@click.option(
    "--sort",
    is_flag=True,
    help="Visit siblings in name order (default: TREE_SORT_REBUILD)",
)
@coro
async def rebuild(sort: bool) -> None:
    """Recompute every interval from the parent column."""
    from hierarchy_store.infra.database import build_tree, close_database, get_async_session

    tree_settings = get_tree_settings()
    table_name = tree_settings.table_name
    sort = sort or tree_settings.sort_rebuild
    info(f"Rebuilding {table_name!r}...")
    try:
        async with get_async_session() as session:
            nested = build_tree(session, tree_settings)
            await nested.rebuild(sort=sort)
            positioned = len(await nested.positions())
    finally:
        await close_database()
    success(f"Rebuilt {table_name!r}: {positioned} nodes positioned")


@tree.command()
@coro
async def check() -> None:
    """Report rows whose intervals disagree with the tree shape."""
    from hierarchy_store.infra.database import build_tree, close_database, get_async_session

    table_name = get_tree_settings().table_name
    try:
        async with get_async_session() as session:
            violations = await find_violations(build_tree(session))
    finally:
        await close_database()

    if not violations:
        success(f"{table_name!r} is consistent")
        return

    violation_report(table_name, violations)
    error("Run 'hierarchy-store tree rebuild' to recompute the intervals")
    sys.exit(1)


@tree.command()
@click.argument("node_id", callback=_node_id)
@click.option("--to", "parent_id", callback=_node_id, help="New parent id")
@click.option("--root", "to_root", is_flag=True, help="Make NODE_ID a root")
@coro
async def move(node_id: Any, parent_id: Any, to_root: bool) -> None:
    """Re-attach NODE_ID's subtree as the last child of another node."""
    from hierarchy_store.infra.database import build_tree, close_database, get_async_session

    if (parent_id is None) == (not to_root):
        error("Pass exactly one of --to PARENT_ID or --root")
        sys.exit(2)

    table_name = get_tree_settings().table_name
    target_id = None if to_root else parent_id
    try:
        async with get_async_session() as session:
            nested = build_tree(session)
            # move_node is a no-op for unknown ids
            unknown = [
                key
                for key in (node_id, target_id)
                if key is not None and await nested.interval(key) is None
            ]
            if not unknown:
                await nested.move_node(node_id, target_id)
    except RepositoryError as e:
        error(str(e))
        sys.exit(1)
    finally:
        await close_database()

    if unknown:
        warning(f"Node {unknown[0]!r} is not positioned in {table_name!r}; nothing moved")
        sys.exit(1)

    target = "root" if to_root else f"node {parent_id!r}"
    success(f"Moved node {node_id!r} under {target}")
