"""CLI for ledger-split."""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from decimal import Decimal

import typer
from rich.console import Console
from rich.table import Table

from .config import Settings, load_settings
from .db import Database
from .ledger import LedgerService
from .models import Account, ExpenseWithShares, SplitPatch, SplitResult, Transaction
from .money import format_money
from .splits import SplitService, compute_owed_to_payer, parse_participants
from .summary import build_summary
from .ui import known_participants, prompt_participants

app = typer.Typer(
    name="ledger-split",
    help="Track bank accounts and split group expenses",
)
account_app = typer.Typer(help="Manage bank accounts")
tx_app = typer.Typer(help="Record and review transactions")
split_app = typer.Typer(help="Split group expenses evenly")

app.add_typer(account_app, name="account")
app.add_typer(tx_app, name="tx")
app.add_typer(split_app, name="split")

console = Console()


def setup_logging(verbose: bool = False):
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


@dataclass
class _Context:
    settings: Settings
    db: Database
    ledger: LedgerService
    splits: SplitService

    @property
    def user(self) -> str:
        return self.settings.ledger_user

    def money(self, amount: Decimal) -> str:
        return format_money(amount, self.settings.currency_symbol)


@contextmanager
def _open(verbose: bool) -> Iterator[_Context]:
    """Load settings, open the database and report errors the way every command does."""
    setup_logging(verbose)
    db = None
    try:
        settings = load_settings()
        db = Database(settings.database_path)
        yield _Context(
            settings=settings,
            db=db,
            ledger=LedgerService(db),
            splits=SplitService(db),
        )
    except Exception as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        if verbose:
            raise
        sys.exit(1)
    finally:
        if db is not None:
            db.close()


VerboseOption = typer.Option(False, "--verbose", "-v", help="Verbose output")


# ============================================================================
# Accounts
# ============================================================================


@account_app.command("add")
def account_add(
    name: str = typer.Argument(..., help="Account display name"),
    type: str = typer.Option(
        "savings", "--type", "-t", help="savings, current or credit"
    ),
    opening_balance: str = typer.Option(
        "0.00", "--opening-balance", "-o", help="Balance at creation"
    ),
    verbose: bool = VerboseOption,
):
    """Register a new bank account."""
    with _open(verbose) as ctx:
        account = ctx.ledger.open_account(ctx.user, name, type, opening_balance)
        console.print(
            f"[bold green]✓ Account created:[/bold green] {account.name} "
            f"[dim]({account.id})[/dim]"
        )


@account_app.command("list")
def account_list(verbose: bool = VerboseOption):
    """List your accounts and their balances."""
    with _open(verbose) as ctx:
        accounts = ctx.ledger.list_accounts(ctx.user)
        if not accounts:
            console.print("[yellow]No accounts yet.[/yellow]")
            return
        display_accounts(ctx, accounts)


def display_accounts(ctx: _Context, accounts: list[Account]):
    """Display accounts in a table."""
    table = Table(title="Accounts", show_header=True, header_style="bold magenta")
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Name", style="cyan")
    table.add_column("Type")
    table.add_column("Balance", justify="right")

    for account in accounts:
        table.add_row(
            account.id, account.name, account.type, ctx.money(account.balance)
        )

    console.print(table)


# ============================================================================
# Transactions
# ============================================================================


@tx_app.command("add")
def tx_add(
    account_id: str = typer.Argument(..., help="Account to post to"),
    amount: str = typer.Argument(..., help="Positive amount, e.g. 12.50"),
    kind: str = typer.Option("debit", "--kind", "-k", help="credit or debit"),
    description: str = typer.Option("", "--description", "-d", help="Description"),
    verbose: bool = VerboseOption,
):
    """Record a credit or debit against an account."""
    with _open(verbose) as ctx:
        transaction = ctx.ledger.add_transaction(
            ctx.user, account_id, amount, kind, description
        )
        account = ctx.ledger.get_account(ctx.user, account_id)
        console.print(
            f"[bold green]✓ Recorded {transaction.kind}[/bold green] of "
            f"{ctx.money(transaction.amount)}[dim]({transaction.id})[/dim]"
        )
        console.print(f"  New balance of {account.name}: {ctx.money(account.balance)}")


@tx_app.command("list")
def tx_list(
    account_id: str | None = typer.Option(
        None, "--account", "-a", help="Only show this account"
    ),
    verbose: bool = VerboseOption,
):
    """List transactions, newest first."""
    with _open(verbose) as ctx:
        if account_id:
            account = ctx.ledger.get_account(ctx.user, account_id)
            transactions = ctx.ledger.list_account_transactions(ctx.user, account_id)
            names = {account.id: account.name}
        else:
            transactions = ctx.ledger.list_user_transactions(ctx.user)
            names = {t.account_id: t.account_name for t in transactions}

        if not transactions:
            console.print("[yellow]No transactions yet.[/yellow]")
            return
        display_transactions(ctx, transactions, names)


@tx_app.command("delete")
def tx_delete(
    transaction_id: str = typer.Argument(..., help="Transaction to delete"),
    verbose: bool = VerboseOption,
):
    """Delete a transaction and recompute its account balance."""
    with _open(verbose) as ctx:
        ctx.ledger.delete_transaction(ctx.user, transaction_id)
        console.print(
            f"[bold green]✓ Deleted transaction[/bold green] {transaction_id}"
        )


def display_transactions(
    ctx: _Context, transactions: list[Transaction], account_names: dict[str, str]
):
    """Display transactions in a table."""
    table = Table(title="Transactions", show_header=True, header_style="bold magenta")
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Date")
    table.add_column("Account", style="cyan")
    table.add_column("Description", width=40)
    table.add_column("Amount", justify="right")

    for t in transactions:
        table.add_row(
            t.id,
            t.occurred_at.strftime("%Y-%m-%d %H:%M"),
            account_names.get(t.account_id, ""),
            t.description,
            ctx.money(t.signed_amount),
        )

    console.print(table)


# ============================================================================
# Splits
# ============================================================================


@split_app.command("add")
def split_add(
    amount: str = typer.Argument(..., help="Total amount, e.g. 100.00"),
    payer: str = typer.Option(..., "--payer", "-p", help="Who paid"),
    description: str = typer.Option("", "--description", "-d", help="Description"),
    participants: str | None = typer.Option(
        None,
        "--participants",
        "-P",
        help="Comma-separated names (prompted for when omitted)",
    ),
    verbose: bool = VerboseOption,
):
    """Split an expense equally among participants."""
    with _open(verbose) as ctx:
        if participants is None:
            history = ctx.splits.list_splits(ctx.user)
            names = prompt_participants(known_participants(history))
            if names is None:
                console.print("[yellow]No split created.[/yellow]")
                return
        else:
            names = parse_participants(participants)

        result = ctx.splits.create_split(ctx.user, payer, amount, description, names)
        display_split_result(ctx, result)


@split_app.command("list")
def split_list(verbose: bool = VerboseOption):
    """List split expenses, newest first."""
    with _open(verbose) as ctx:
        splits = ctx.splits.list_splits(ctx.user)
        if not splits:
            console.print("[yellow]No split expenses yet.[/yellow]")
            return
        for item in splits:
            display_split(ctx, item)


@split_app.command("edit")
def split_edit(
    expense_id: str = typer.Argument(..., help="Split to edit"),
    amount: str | None = typer.Option(None, "--amount", help="New total"),
    description: str | None = typer.Option(None, "--description", "-d"),
    payer: str | None = typer.Option(None, "--payer", "-p"),
    verbose: bool = VerboseOption,
):
    """
    Edit the amount, description or payer of a split.

    Participant shares are not recomputed when the amount changes.
    """
    with _open(verbose) as ctx:
        patch = SplitPatch(amount=amount, description=description, payer_name=payer)
        expense = ctx.splits.update_split(ctx.user, expense_id, patch)
        console.print(
            f"[bold green]✓ Updated split[/bold green] "
            f"{expense.description or expense.id}"
        )


@split_app.command("delete")
def split_delete(
    expense_id: str = typer.Argument(..., help="Split to delete"),
    verbose: bool = VerboseOption,
):
    """Delete a split and its participant shares."""
    with _open(verbose) as ctx:
        ctx.splits.delete_split(ctx.user, expense_id)
        console.print(f"[bold green]✓ Deleted split[/bold green] {expense_id}")


def display_split_result(ctx: _Context, result: SplitResult):
    """Display a newly created split with who owes whom."""
    expense = result.expense
    console.print("\n[bold green]✓ Split created![/bold green]")
    console.print(f"  ID: [dim]{expense.id}[/dim]")
    console.print(f"  Total: {ctx.money(expense.amount)}")
    console.print(f"  Per person: {ctx.money(result.share_amount)}")

    if result.owed_to_payer:
        console.print("\n[bold]Who owes whom:[/bold]")
        for owed in result.owed_to_payer:
            console.print(
                f"  {owed.name} owes {expense.payer_name} {ctx.money(owed.amount)}"
            )


def display_split(ctx: _Context, item: ExpenseWithShares):
    """Display one split expense with its shares and who owes whom."""
    expense = item.expense
    table = Table(
        title=f"{expense.description or 'Split'} ({expense.occurred_at:%Y-%m-%d})",
        caption=f"{expense.id} · paid by {expense.payer_name} · total "
        f"{ctx.money(expense.amount)}",
        show_header=True,
        header_style="bold magenta",
    )
    table.add_column("Participant", style="cyan")
    table.add_column("Share", justify="right")

    for share in item.shares:
        table.add_row(share.name, ctx.money(share.share_amount))

    console.print(table)
    for entry in compute_owed_to_payer(expense.payer_name, item.shares):
        console.print(
            f"  [dim]{entry.name} owes {expense.payer_name} "
            f"{ctx.money(entry.amount)}[/dim]"
        )


# ============================================================================
# Summary
# ============================================================================


@app.command()
def summary(verbose: bool = VerboseOption):
    """Show balances, income, spending and split totals."""
    with _open(verbose) as ctx:
        result = build_summary(
            ctx.ledger,
            ctx.splits,
            ctx.user,
            recent=ctx.settings.recent_transaction_count,
        )

        console.print("\n[bold]Dashboard[/bold]")
        console.print(f"  Total balance:   {ctx.money(result.total_balance)}")
        console.print(f"  Income:          {ctx.money(result.total_credits)}")
        console.print(f"  Expenses:        {ctx.money(result.total_debits)}")
        console.print(f"  Split expenses:  {ctx.money(result.total_split_expenses)}")
        console.print(
            f"  [dim]{result.account_count} accounts, {result.split_count} splits[/dim]"
        )

        if result.recent_transactions:
            names = {t.account_id: t.account_name for t in result.recent_transactions}
            display_transactions(ctx, list(result.recent_transactions), names)


if __name__ == "__main__":
    app()
