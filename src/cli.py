"""Command-line front-end: the view layer over session, market state and settlement."""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, Optional

import typer

from src.config import Settings, configure_logging
from src.engine.market_state import odds_for, quote, status, utcnow, validate_wager
from src.engine.portfolio import (
    bet_stats,
    filter_markets,
    format_amount,
    net_flow,
    sort_newest_first,
    status_counts,
)
from src.execution.settlement import ResolutionPreview
from src.models.errors import PredictError
from src.models.schemas import Category, Market, MarketDraft, MarketStatus, Outcome
from src.runner import App, build_app, run_one_cycle, watch

app = typer.Typer(
    name="paisa",
    help="PaisaPredict - trade YES/NO prediction markets from the terminal.",
    no_args_is_help=True,
)


@app.callback()
def main(ctx: typer.Context) -> None:
    """Configure logging and wire the client. Tests may pass a ready App as obj."""
    if ctx.obj is None:
        settings = Settings.from_env()
        configure_logging(settings)
        ctx.obj = build_app(settings)
        ctx.call_on_close(ctx.obj.close)


def _app(ctx: typer.Context, init: bool = True) -> App:
    paisa: App = ctx.obj
    if init:
        # Nothing renders until the stored session has been checked.
        paisa.session.init()
    return paisa


@contextmanager
def _guard() -> Iterator[None]:
    try:
        yield
    except PredictError as exc:
        typer.secho(f"Error: {exc}", fg=typer.colors.RED, err=True)
        for field_error in getattr(exc, "field_errors", []):
            typer.secho(f"  {'.'.join(field_error.path)}: {field_error.message}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)


def _status_label(market: Market, now: datetime) -> str:
    current = status(market, now)
    if current is MarketStatus.RESOLVED:
        return f"Resolved: {market.outcome.value}"
    return current.value.title()


def _market_line(market: Market, now: datetime) -> str:
    return (
        f"  #{market.id:<5} {_status_label(market, now):<14} {market.category.value:<8} "
        f"YES {odds_for(market, Outcome.YES):.2f}x  NO {odds_for(market, Outcome.NO):.2f}x  {market.title[:50]}"
    )


@app.command()
def login(
    ctx: typer.Context,
    email: str = typer.Option(..., "--email", "-e", prompt=True),
    password: str = typer.Option(..., "--password", prompt=True, hide_input=True),
) -> None:
    """Sign in and remember the session."""
    paisa = _app(ctx, init=False)
    with _guard():
        user = paisa.session.login(email, password)
    typer.echo(f"Signed in as {user.email}. Balance {format_amount(user.balance)}")


@app.command()
def signup(
    ctx: typer.Context,
    email: str = typer.Option(..., "--email", "-e", prompt=True),
    password: str = typer.Option(..., "--password", prompt=True, hide_input=True, confirmation_prompt=True),
) -> None:
    """Create an account. Sign in afterwards with `login`."""
    paisa = _app(ctx, init=False)
    with _guard():
        paisa.session.signup(email, password)
    typer.echo("Account created. Please sign in.")


@app.command()
def logout(ctx: typer.Context) -> None:
    """Forget the stored session."""
    _app(ctx, init=False).session.logout()
    typer.echo("Logged out.")


@app.command()
def whoami(ctx: typer.Context) -> None:
    paisa = _app(ctx)
    user = paisa.session.user
    if user is None:
        typer.echo("Not signed in.")
        return
    role = "Admin" if paisa.session.is_admin else "Trader"
    typer.echo(f"{user.email} ({role}) balance {format_amount(user.balance)}")


@app.command("markets")
def list_markets(
    ctx: typer.Context,
    search: Optional[str] = typer.Option(None, "--search", "-s", help="Match title or description"),
    category: Optional[Category] = typer.Option(None, "--category", "-c"),
    market_status: Optional[MarketStatus] = typer.Option(None, "--status"),
) -> None:
    """List markets with their derived status and odds."""
    paisa = _app(ctx)
    now = utcnow()
    with _guard():
        if market_status is MarketStatus.ACTIVE:
            markets = paisa.client.open_markets()
        elif category is not None:
            markets = paisa.client.markets_by_category(category)
        else:
            markets = paisa.client.list_markets()
    counts = status_counts(markets, now)
    typer.echo(
        f"{counts[MarketStatus.ACTIVE]} active, {counts[MarketStatus.LOCKED]} locked, "
        f"{counts[MarketStatus.RESOLVED]} resolved"
    )
    selected = filter_markets(markets, now, search=search, category=category, market_status=market_status)
    if not selected:
        typer.echo("No markets match." if (search or category or market_status) else "No markets available.")
        return
    for market in selected:
        typer.echo(_market_line(market, now))


@app.command()
def show(ctx: typer.Context, market_id: int = typer.Argument(...)) -> None:
    """Show one market and the bets placed on it."""
    paisa = _app(ctx)
    now = utcnow()
    with _guard():
        market = paisa.client.get_market(market_id)
        bets = paisa.client.list_market_bets(market_id) if paisa.session.is_authenticated else []
    typer.echo(f"{market.title}  [{_status_label(market, now)}]")
    if market.description:
        typer.echo(market.description)
    typer.echo(f"Category: {market.category.value}  Ends: {market.end_time:%Y-%m-%d %H:%M} UTC")
    typer.echo(f"YES {odds_for(market, Outcome.YES):.2f}x   NO {odds_for(market, Outcome.NO):.2f}x")
    for wager in sort_newest_first(bets):
        typer.echo(
            f"  {wager.outcome_chosen.value:<3} {format_amount(wager.amount)} @ {wager.odds:.2f}x  {wager.status.value}"
        )


@app.command()
def bet(
    ctx: typer.Context,
    market_id: int = typer.Argument(...),
    outcome: Outcome = typer.Argument(..., case_sensitive=False),
    stake: int = typer.Argument(..., help="Stake in paise"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt"),
) -> None:
    """Place a wager; the stake is checked locally before it is sent."""
    paisa = _app(ctx)
    with _guard():
        user = paisa.session.require_user()
        market = paisa.client.get_market(market_id)
        validate_wager(market, stake, user.balance, utcnow())
        ticket = quote(market, outcome, stake)
        typer.echo(
            f"{outcome.value} {format_amount(stake)} @ {ticket.odds:.2f}x -> payout {format_amount(ticket.payout)} "
            f"(profit {format_amount(ticket.profit)})"
        )
        if not yes and not typer.confirm("Place this wager?"):
            raise typer.Abort()
        receipt = paisa.desk.place(market, outcome, stake)
    typer.secho(f"Bet placed: {receipt.result.message or 'ok'}", fg=typer.colors.GREEN)
    if receipt.market is None:
        typer.secho("Could not reload the market; do not place this wager again.", fg=typer.colors.YELLOW)
    if receipt.updated_odds is not None:
        typer.echo(f"Odds now YES {receipt.updated_odds.odds_yes:.2f}x  NO {receipt.updated_odds.odds_no:.2f}x")
    if receipt.user is not None:
        typer.echo(f"Balance {format_amount(receipt.user.balance)}")


@app.command()
def profile(ctx: typer.Context, limit: int = typer.Option(10, "--limit", "-n")) -> None:
    """Balance, win rate and recent activity."""
    paisa = _app(ctx)
    with _guard():
        user = paisa.session.require_user()
        bets = sort_newest_first(paisa.client.list_user_bets())
        transactions = sort_newest_first(paisa.client.list_transactions())
    stats = bet_stats(bets, transactions)
    typer.echo(f"{user.email}  balance {format_amount(user.balance)}")
    typer.echo(
        f"Bets {stats.total_bets} (won {stats.won}, lost {stats.lost}, pending {stats.pending})  "
        f"win rate {stats.win_rate:.1f}%"
    )
    typer.echo(
        f"Wagered {format_amount(stats.total_wagered)}  winnings {format_amount(stats.total_winnings)}  "
        f"net {format_amount(net_flow(transactions))}"
    )
    for tx in transactions[:limit]:
        typer.echo(f"  {tx.type.value.replace('_', ' ').lower():<11} {format_amount(tx.signed_amount)}")


@app.command()
def leaderboard(ctx: typer.Context, limit: int = typer.Option(10, "--limit", "-n")) -> None:
    paisa = _app(ctx)
    with _guard():
        entries = paisa.client.leaderboard()
    if not entries:
        typer.echo("No winners yet.")
        return
    for rank, entry in enumerate(entries[:limit], start=1):
        typer.echo(f"  {rank:>3}. {entry.handle:<20} {format_amount(entry.total_winnings)}")


@app.command("create-market")
def create_market(
    ctx: typer.Context,
    title: str = typer.Option(..., "--title"),
    end_time: datetime = typer.Option(..., "--end-time", formats=["%Y-%m-%dT%H:%M", "%Y-%m-%d %H:%M", "%Y-%m-%d"]),
    description: str = typer.Option("", "--description"),
    category: Category = typer.Option(Category.SPORTS, "--category"),
) -> None:
    """Create a market (administrators only)."""
    paisa = _app(ctx)
    with _guard():
        paisa.session.require_admin()
        market = paisa.settlement.create_market(
            MarketDraft(title=title, description=description, end_time=end_time, category=category)
        )
    typer.echo(f"Created market #{market.id}: {market.title}")


@app.command()
def lock(ctx: typer.Context, market_id: int = typer.Argument(...)) -> None:
    """Freeze wagering on a market. Resolve it separately once reviewed."""
    paisa = _app(ctx)
    with _guard():
        paisa.session.require_admin()
        market = paisa.settlement.lock(market_id)
    typer.echo(f"Market #{market.id} is now {_status_label(market, utcnow())}.")


def _print_preview(preview: ResolutionPreview) -> None:
    typer.echo(f"{preview.market.title}: {len(preview.bets)} bets, {format_amount(preview.total_staked)} staked")
    for exposure in preview.exposure.values():
        typer.echo(
            f"  if {exposure.outcome.value:<3} wins: {exposure.bet_count} winning bets, "
            f"pays {format_amount(exposure.total_payout)}"
        )


@app.command()
def resolve(
    ctx: typer.Context,
    market_id: int = typer.Argument(...),
    outcome: Outcome = typer.Argument(..., case_sensitive=False),
    yes: bool = typer.Option(False, "--yes", "-y", help="Confirm without prompting"),
) -> None:
    """Settle a locked market. This cannot be undone."""
    paisa = _app(ctx)
    with _guard():
        paisa.session.require_admin()
        preview = paisa.settlement.review(market_id)
        _print_preview(preview)
        if not yes and not typer.confirm(f"Resolve market #{market_id} as {outcome.value}? This is final"):
            raise typer.Abort()
        market = paisa.settlement.resolve(market_id, outcome)
    typer.echo(f"Market #{market.id} {_status_label(market, utcnow())}.")


@app.command("watch")
def watch_board(ctx: typer.Context, once: bool = typer.Option(False, "--once")) -> None:
    """Poll the market board on a schedule and log status counts."""
    paisa = _app(ctx)
    if once:
        run_one_cycle(paisa)
        return
    watch(paisa)


def run() -> None:
    app()


if __name__ == "__main__":
    run()
