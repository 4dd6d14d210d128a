import json
import logging
import sys
from datetime import datetime

import click
from rich.console import Console
from rich.markup import escape

from mintik.config.logging_config import setup_logging
from mintik.config.settings import Settings
from mintik.context import AppContext
from mintik.services.display import TerminalDisplay
from mintik.services.errors import ConfigError

logger = logging.getLogger(__name__)

console = Console()

def _load_context(settings: Settings) -> AppContext:
    """A context over the persisted data, without a tick loop"""
    return AppContext(settings=settings).load()

@click.group()
@click.option('--debug', is_flag=True, help='Enable debug output')
@click.pass_context
def cli(ctx, debug):
    """MinTik focus tracker"""
    settings = Settings(DEBUG=debug) if debug else Settings()
    settings.validate_paths()
    setup_logging(settings.LOG_DIR, debug=settings.DEBUG)
    ctx.obj = settings

@cli.command()
@click.option('--web', is_flag=True, help='Also serve the JSON API')
@click.option('--host', default=None, help='Host to bind the API to')
@click.option('--port', default=None, type=int, help='Port to bind the API to')
@click.pass_obj
def start(settings, web, host, port):
    """Start tracking in the foreground"""
    try:
        from mintik.services.runner import run_service
        console.print("[yellow]Starting MinTik...[/yellow]")
        run_service(settings, web=web, host=host, port=port)
    except Exception as e:
        logger.error(f"Failed to start service: {e}")
        console.print(f"[red]Failed to start service: {escape(str(e))}[/red]")
        sys.exit(1)

@cli.command()
@click.pass_obj
def status(settings):
    """Show the last saved focus state"""
    context = _load_context(settings)
    TerminalDisplay(console).show_status(context.published_state())

@cli.command()
@click.option('--date', 'day', default=None, help='Day to report (YYYY-MM-DD), default today')
@click.pass_obj
def report(settings, day):
    """Show a day's focus summary"""
    try:
        target = datetime.strptime(day, "%Y-%m-%d") if day else datetime.now()
    except ValueError:
        console.print("[red]Invalid date format, expected YYYY-MM-DD[/red]")
        sys.exit(1)
    context = _load_context(settings)
    TerminalDisplay(console).show_daily_report(context.metrics.get_daily_metrics(target))

@cli.command()
@click.pass_obj
def days(settings):
    """List every recorded day"""
    context = _load_context(settings)
    rows = [
        context.metrics.get_daily_metrics(datetime.strptime(key, "%Y-%m-%d"))["summary"]
        for key in context.daily_store.date_keys()
    ]
    TerminalDisplay(console).show_days(rows)

@cli.group()
def config():
    """Configuration commands"""
    pass

@config.command('show')
@click.pass_obj
def config_show(settings):
    """Print the stored configuration"""
    context = _load_context(settings)
    console.print_json(json.dumps(context.config.to_dict()))

@config.command('set')
@click.argument('key')
@click.argument('value')
@click.pass_obj
def config_set(settings, key, value):
    """Set one configuration value (VALUE is parsed as JSON when possible)"""
    try:
        parsed = json.loads(value)
    except ValueError:
        parsed = value
    context = _load_context(settings)
    try:
        context.set_config({key: parsed})
    except ConfigError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        sys.exit(1)
    # Write now instead of waiting out the debounce window
    context.scheduler.flush_config()
    context.scheduler.close()
    console.print(f"[green]{key} updated[/green]")

@cli.command()
@click.confirmation_option(prompt='Delete all focus history and settings?')
@click.pass_obj
def clear(settings):
    """Delete all stored activity and configuration"""
    context = _load_context(settings)
    context.clear_all_data()
    context.scheduler.close()
    click.echo("All data cleared")

if __name__ == '__main__':
    cli()
