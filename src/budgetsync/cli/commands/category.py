"""Category management commands."""

import click

from budgetsync.cli.error_handling import handle_domain_error
from budgetsync.domain.category import CategoryService


@click.group()
def category_group():
    """Manage destination categories."""
    pass


def _echo_tree(nodes: list[dict], depth: int = 0) -> None:
    for node in nodes:
        cat = node["category"]
        click.echo(f"{'  ' * depth}{cat.name} ({cat.id})")
        _echo_tree(node["children"], depth + 1)


@category_group.command("list")
@click.pass_context
def list_categories(ctx):
    """Show the category tree."""
    service = CategoryService(ctx.obj["db"])

    tree = service.get_category_tree()
    if not tree:
        click.echo("No categories found. Run 'budgetsync category init' to load defaults.")
        return
    _echo_tree(tree)


@category_group.command("create")
@click.argument("category_id", metavar="CATEGORY_ID")
@click.argument("name", metavar="NAME")
@click.option("--parent", help="Parent category ID")
@click.pass_context
def create_category(ctx, category_id: str, name: str, parent: str | None):
    """Create a category.

    Examples:
        budgetsync category create groceries "Groceries" --parent food
    """
    service = CategoryService(ctx.obj["db"])

    try:
        service.create_category(category_id, name, parent_id=parent)
        click.echo(f"Created category '{service.format_category_path(category_id)}'")
    except ValueError as e:
        handle_domain_error(ctx, e)


@category_group.command("init")
@click.pass_context
def init_categories(ctx):
    """Load the default category tree (existing IDs are kept)."""
    service = CategoryService(ctx.obj["db"])

    created = service.load_defaults()
    click.echo(f"Created {created} categories")


def register_commands(cli):
    """Register category commands with main CLI."""
    cli.add_command(category_group, name="category")
