"""Main CLI entry point for hierarchy-store management commands."""

import click

from hierarchy_store.cli.commands import tree
from hierarchy_store.infra.logging.config import setup_logging


@click.group()
@click.version_option(version="0.1.0", prog_name="hierarchy-store")
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Hierarchy Store CLI - Maintenance commands for nested-set tree tables.

    The table and column names come from TREE_* environment variables and
    the database URL from DATABASE_URL.

    \b
    Command Groups:
      tree       Inspect, verify, repair and reshape a tree

    \b
    Quick Start:
      hierarchy-store tree check          # Report interval inconsistencies
      hierarchy-store tree rebuild        # Recompute intervals from parent_id
      hierarchy-store tree show 1         # Print the subtree under node 1
      hierarchy-store tree move 7 --to 3  # Re-parent node 7 under node 3
    """
    ctx.ensure_object(dict)


cli.add_command(tree.tree)


def main() -> None:
    """Entry point for CLI."""
    setup_logging()
    cli(obj={})


if __name__ == "__main__":
    main()
