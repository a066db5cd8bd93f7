"""Account management commands."""

import click

from budgetsync.cli.error_handling import handle_domain_error
from budgetsync.domain.account import AccountService
from budgetsync.domain.identifiers import AccountId


@click.group()
def account_group():
    """Manage source bank accounts."""
    pass


@account_group.command("create")
@click.argument("account_id", metavar="ACCOUNT_ID")
@click.argument("name", metavar="ACCOUNT_NAME")
@click.option("--bank", help="Bank name (defaults to the bank part of ACCOUNT_ID)")
@click.option("--currency", default="CZK", show_default=True, help="Account currency code")
@click.option("--destination", help="Destination account ID in the budgeting app")
@click.pass_context
def create_account(
    ctx, account_id: str, name: str, bank: str | None, currency: str, destination: str | None
):
    """Create a new account.

    ACCOUNT_ID has the form BANK-ACCOUNT_NUMBER.

    Examples:
        budgetsync account create fio-2100012345 "Checking"
        budgetsync account create fio-2100012345 "Checking" --destination ynab-acc-1
    """
    db = ctx.obj["db"]
    service = AccountService(db)

    try:
        parsed = AccountId.parse(account_id)
        bank_name = bank if bank is not None else parsed.bank_id
        created = service.create_account(
            account_id=parsed,
            name=name,
            bank_name=bank_name,
            currency=currency,
            destination_account_id=destination,
        )
        click.echo(f"Created account '{name}' (ID: {created})")
    except ValueError as e:
        handle_domain_error(ctx, e)


@account_group.command("list")
@click.pass_context
def list_accounts(ctx):
    """List all accounts."""
    db = ctx.obj["db"]
    service = AccountService(db)

    accounts = service.list_accounts()
    if not accounts:
        click.echo("No accounts found.")
        return

    click.echo("\nAccounts:")
    click.echo("-" * 80)
    for acc in accounts:
        destination = acc.destination_account_id or "-"
        click.echo(
            f"{acc.id:24s} | {acc.name:20s} | {acc.currency} | Bank: {acc.bank_name:10s} "
            f"| Destination: {destination}"
        )


@account_group.command("rename")
@click.argument("account_id", metavar="ACCOUNT_ID")
@click.argument("new_name", metavar="NEW_NAME")
@click.option("--bank", help="New bank name (optional)")
@click.pass_context
def rename_account(ctx, account_id: str, new_name: str, bank: str | None) -> None:
    """Rename an account."""
    db = ctx.obj["db"]
    service = AccountService(db)

    try:
        service.rename_account(account_id=account_id, name=new_name, bank_name=bank)
        click.echo(f"Renamed account to '{new_name}'")
        if bank is not None:
            click.echo(f"Bank name updated to '{bank}'")
    except ValueError as e:
        handle_domain_error(ctx, e)


@account_group.command("set-destination")
@click.argument("account_id", metavar="ACCOUNT_ID")
@click.argument("destination", metavar="DESTINATION_ACCOUNT_ID")
@click.pass_context
def set_destination(ctx, account_id: str, destination: str) -> None:
    """Set the budgeting-app account that receives this account's transactions."""
    db = ctx.obj["db"]
    service = AccountService(db)

    try:
        service.set_destination_account(account_id, destination)
        click.echo(f"Transactions from {account_id} will be submitted to {destination}")
    except ValueError as e:
        handle_domain_error(ctx, e)


@account_group.command("delete")
@click.argument("account_id", metavar="ACCOUNT_ID")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete_account(ctx, account_id: str, yes: bool) -> None:
    """Delete an account.

    The account can only be deleted if it has no imported transactions.
    """
    db = ctx.obj["db"]
    service = AccountService(db)

    account_obj = service.get_account(account_id)
    if account_obj is None:
        click.echo(f"Error: Account {account_id} not found", err=True)
        ctx.exit(1)

    # Confirm deletion
    if not yes and not click.confirm(
        f"Are you sure you want to delete account '{account_obj.name}' (ID: {account_id})?"
    ):
        click.echo("Deletion cancelled.")
        return

    try:
        service.delete_account(account_id)
        click.echo(f"Deleted account '{account_obj.name}'")
    except ValueError as e:
        handle_domain_error(ctx, e)


def register_commands(cli):
    """Register account commands with main CLI."""
    cli.add_command(account_group, name="account")
