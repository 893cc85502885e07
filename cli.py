# Simple CLI for Trade Desk
import asyncio
import click

from app.containers import AppContainer
from core.logging import configure_logging
from core.trading.utils import describe_position, format_pnl, total_pnl
from core.utils.exceptions import TradeDeskException, user_message


def _engine():
    container = AppContainer()
    configure_logging(container.settings())
    return container.trading_engine()


async def _with_engine(action):
    engine = _engine()
    try:
        await engine.start()
        return await action(engine)
    finally:
        await engine.shutdown()


def _run(action):
    try:
        return asyncio.run(_with_engine(action))
    except TradeDeskException as e:
        raise click.ClickException(user_message(e))


def _require_account(engine):
    if engine.account is None:
        raise click.ClickException("No linked account. Run `trade-desk link` first.")


@click.group()
def cli():
    """Trade Desk CLI"""
    pass


@cli.command()
def run():
    """Watch positions until interrupted"""
    click.echo("📈 Starting Trade Desk...")
    from app.main import main as run_app
    asyncio.run(run_app())


@cli.command()
@click.option("--client-id", prompt=True, help="Broker client id")
@click.option("--access-token", prompt=True, hide_input=True, help="Broker access token")
def link(client_id, access_token):
    """Link a broker account"""
    async def action(engine):
        account = await engine.link(client_id, access_token)
        click.echo(f"✅ Linked account {account.client_id}")
        click.echo(f"Open positions: {len(engine.positions)}")
    _run(action)


@cli.command()
@click.argument("query")
@click.option("--exchange", default=None, help="Exchange filter, e.g. NSE or BSE")
def search(query, exchange):
    """Search tradable instruments"""
    async def action(engine):
        results = await engine.search(query, exchange)
        if not results:
            message = engine.state.last_search_error or "No instruments found"
            click.echo(message)
            return
        for i, instrument in enumerate(results, start=1):
            click.echo(f"{i:>2}. {instrument.label} [{instrument.exchange_segment}] "
                       f"id={instrument.security_id}")
    _run(action)


@cli.command()
def positions():
    """Show open positions"""
    async def action(engine):
        _require_account(engine)
        current = engine.positions
        if engine.state.last_positions_error:
            raise click.ClickException(engine.state.last_positions_error)
        if not current:
            click.echo("No open positions")
            return
        for position in current:
            click.echo(f"[{position.security_id or '-'}] {describe_position(position)}")
        click.echo(f"Total P&L: {format_pnl(total_pnl(current))}")
    _run(action)


@cli.command()
@click.argument("query")
@click.option("--side", type=click.Choice(["BUY", "SELL"], case_sensitive=False), default="BUY")
@click.option("--qty", "quantity", type=int, default=1, show_default=True)
@click.option("--type", "order_type", type=click.Choice(["MARKET", "LIMIT"], case_sensitive=False),
              default="MARKET")
@click.option("--price", type=float, default=0.0, help="Required for LIMIT orders")
@click.option("--product", type=click.Choice(["INTRADAY", "CNC", "DELIVERY"], case_sensitive=False),
              default="INTRADAY")
@click.option("--exchange", default=None, help="Exchange filter for the instrument search")
@click.option("--pick", type=int, default=None, help="Pick the Nth search result instead of the exact symbol match")
def order(query, side, quantity, order_type, price, product, exchange, pick):
    """Place an order for the instrument matching QUERY"""
    async def action(engine):
        _require_account(engine)
        results = await engine.search(query, exchange)
        if not results:
            raise click.ClickException(engine.state.last_search_error or f"No instrument matches '{query}'")
        if pick is not None:
            if not 1 <= pick <= len(results):
                raise click.ClickException(f"--pick must be between 1 and {len(results)}")
            instrument = results[pick - 1]
        else:
            exact = [r for r in results if r.trading_symbol.upper() == query.strip().upper()]
            if not exact:
                for i, r in enumerate(results, start=1):
                    click.echo(f"{i:>2}. {r.label} [{r.exchange_segment}] id={r.security_id}")
                raise click.ClickException("No exact symbol match; choose one with --pick")
            instrument = exact[0]

        engine.select_instrument(instrument)
        engine.update_draft(
            transaction_type=side.upper(),
            quantity=quantity,
            order_type=order_type.upper(),
            price=price,
            product_type=product.upper(),
        )
        result = await engine.submit_order()
        click.echo(f"✅ Order {result.status or 'submitted'} "
                   f"({instrument.trading_symbol}, id={result.order_id or '-'})")
    _run(action)


@cli.command()
@click.argument("security_id")
@click.option("--yes", is_flag=True, help="Close without asking for confirmation")
def close(security_id, yes):
    """Close the open position for SECURITY_ID"""
    async def action(engine):
        _require_account(engine)
        matches = [p for p in engine.positions if p.security_id == security_id]
        if not matches:
            raise click.ClickException(f"No open position with security id {security_id}")
        position = matches[0]
        confirmed = yes or click.confirm(f"Close {describe_position(position)}?", default=False)
        if not confirmed:
            click.echo("Cancelled")
            return
        result = await engine.close_position(position, confirmed=confirmed)
        click.echo(f"✅ Close request {result.status or 'sent'} "
                   f"({result.closing_side.value} {position.quantity})")
    _run(action)


if __name__ == "__main__":
    cli()
