"""
Command-line interface for the funding rate arbitrage bot.
"""

import asyncio
import sys

import click
from rich.console import Console
from rich.table import Table

from funding_arb_bot.bot.funding_oracle import FundingRateOracle, RateFetchError
from funding_arb_bot.config.settings import (
    ConfigValidationError,
    create_sample_config,
    find_config_file,
    load_config,
    load_yaml,
    validate_config
)
from funding_arb_bot.exchange import ExchangeError, create_connector
from funding_arb_bot.main import run_bot
from funding_arb_bot.models.config import FundingBotConfig
from funding_arb_bot.utils.logging_setup import setup_logging

console = Console()


def _load(ctx) -> FundingBotConfig:
    try:
        return load_config(ctx.obj.get('config_file'), ctx.obj.get('env_file'))
    except ConfigValidationError as e:
        click.echo(f"❌ {e}", err=True)
        sys.exit(1)


@click.group()
@click.option('--config', '-c', 'config_file', help='Configuration file path')
@click.option('--env-file', help='.env file with credentials and overrides')
@click.option('--verbose', '-v', is_flag=True, help='Verbose logging')
@click.pass_context
def cli(ctx, config_file, env_file, verbose):
    """Funding Rate Arbitrage Bot CLI"""
    ctx.ensure_object(dict)
    ctx.obj['config_file'] = config_file
    ctx.obj['env_file'] = env_file
    ctx.obj['verbose'] = verbose


@cli.command()
@click.option('--close-on-exit/--keep-on-exit', default=None,
              help='Close all open positions on shutdown (overrides bot.close_positions_on_exit)')
@click.pass_context
def trade(ctx, close_on_exit):
    """Run the arbitrage loop until Ctrl+C"""
    config = _load(ctx)

    log_config = config.logging
    setup_logging(
        level="DEBUG" if ctx.obj['verbose'] else config.bot.log_level,
        log_file=log_config.file or None,
        max_size_mb=log_config.max_size_mb,
        backup_count=log_config.backup_count,
        fmt=log_config.format,
    )

    click.echo(f"🚀 Starting {config.bot.name}...")
    try:
        run_bot(config, close_positions_on_exit=close_on_exit)
    except KeyboardInterrupt:
        click.echo("\n👋 Bot stopped by user")
    except ExchangeError as e:
        click.echo(f"❌ Venue error: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.option('--output', '-o', default='config.sample.yaml', help='Output file name')
@click.option('--force', is_flag=True, help='Overwrite an existing file')
def init(output, force):
    """Create a sample configuration file"""
    try:
        path = create_sample_config(output, overwrite=force)
    except FileExistsError:
        click.echo(f"❌ {output} already exists, use --force to overwrite", err=True)
        sys.exit(1)

    click.echo(f"✅ Sample configuration created: {path}")
    click.echo("\n📋 Next steps:")
    click.echo(f"1. Edit {output} and rename it to config.yaml")
    click.echo("2. Put API keys in .env (LIGHTER_API_KEY, EXTENDED_API_KEY, ...)")
    click.echo("3. Run: funding-arb-bot validate")
    click.echo("4. Run: funding-arb-bot trade")


@cli.command()
@click.pass_context
def validate(ctx):
    """Validate configuration file"""
    config_file = ctx.obj.get('config_file')

    try:
        path = find_config_file(config_file)
        if path is None:
            click.echo("❌ Configuration file not found", err=True)
            click.echo("💡 Run 'funding-arb-bot init' to create a sample config")
            sys.exit(1)
        click.echo(f"🔍 Validating configuration: {path}")

        is_valid, errors = validate_config(load_yaml(path))
        if is_valid:
            # Re-load with environment overrides applied
            config = load_config(str(path), ctx.obj.get('env_file'))
    except ConfigValidationError as e:
        click.echo(f"❌ {e}", err=True)
        sys.exit(1)

    if not is_valid:
        click.echo("❌ Configuration has errors:")
        for error in errors:
            click.echo(f"   • {error}")
        sys.exit(1)

    trading = config.trading
    venues = config.exchanges
    click.echo("✅ Configuration is valid!")
    click.echo(f"📊 Venues: {venues.venue_a.type} (A) / {venues.venue_b.type} (B)"
               f"{' [testnet]' if trading.testnet else ''}")
    click.echo(f"🪙 Markets: {', '.join(trading.markets)}")
    click.echo(f"💰 Min funding rate diff: {trading.min_funding_rate_diff}")
    click.echo(f"💵 Position size: ${trading.position_size_usd} (cap ${trading.max_position_usd})")
    click.echo(f"📣 Telegram: {'ON' if config.monitoring.telegram.enabled else 'OFF'}")


@cli.command()
@click.pass_context
def rates(ctx):
    """Show current funding rates of both venues"""
    config = _load(ctx)
    setup_logging("DEBUG" if ctx.obj['verbose'] else "WARNING")

    async def fetch():
        venue_a = create_connector(config.get_venue_config("venue_a"), config.trading.testnet)
        venue_b = create_connector(config.get_venue_config("venue_b"), config.trading.testnet)
        try:
            await venue_a.connect()
            await venue_b.connect()
            oracle = FundingRateOracle(venue_a, venue_b, timeout=config.bot.venue_timeout_seconds)
            return venue_a.name, venue_b.name, await oracle.fetch_snapshot()
        finally:
            await venue_a.disconnect()
            await venue_b.disconnect()

    try:
        name_a, name_b, snapshot = asyncio.run(fetch())
    except (RateFetchError, ExchangeError) as e:
        click.echo(f"❌ {e}", err=True)
        sys.exit(1)

    threshold = config.trading.min_funding_rate_diff
    table = Table(title=f"Funding rates: {name_a} vs {name_b}")
    table.add_column("Market", style="cyan")
    table.add_column(name_a, justify="right")
    table.add_column(name_b, justify="right")
    table.add_column("Diff (A-B)", justify="right")
    table.add_column("Signal")

    for market in config.trading.markets:
        pair = snapshot.pair(market)
        if pair is None:
            table.add_row(market, "-", "-", "-", "[dim]not quoted on both[/dim]")
            continue
        rate_a, rate_b = pair
        diff = rate_a - rate_b
        if abs(diff) > threshold:
            signal = f"[green]LONG {name_b} / SHORT {name_a}[/green]" if diff > 0 else \
                f"[green]LONG {name_a} / SHORT {name_b}[/green]"
        else:
            signal = "[dim]hold[/dim]"
        table.add_row(market, f"{rate_a * 100:.4f}%", f"{rate_b * 100:.4f}%", f"{diff * 100:.4f}%", signal)

    console.print(table)


if __name__ == '__main__':
    cli()
