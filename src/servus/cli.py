"""Command line browser for announced services.

    servus discover _hwsd._tcp --time 2000
    servus browse _hwsd._tcp --local
    servus announce _hwsd._tcp --port 4242 --set foo=bar
"""
import logging
import time
from typing import Dict, Tuple

import click

from .config import DEFAULT_BROWSE_TIME_MS, Config
from .directory import ServiceDirectory
from .result import Result
from .store import Listener, Scope

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

logger = logging.getLogger(__name__)


class EchoListener(Listener):
    """Prints instances as they appear and disappear."""

    def __init__(self, directory: ServiceDirectory):
        self.directory = directory

    def instance_added(self, instance: str) -> None:
        host = self.directory.get_host(instance)
        port = self.directory.get_port(instance)
        click.echo(f"+ {instance} ({host}:{port})")
        for key in self.directory.get_keys(instance):
            click.echo(f"    {key} = {self.directory.get(instance, key)}")

    def instance_removed(self, instance: str) -> None:
        click.echo(f"- {instance}")


def _parse_pairs(ctx, param, values: Tuple[str, ...]) -> Dict[str, str]:
    pairs: Dict[str, str] = {}
    for item in values:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected key=value, got {item!r}")
        pairs[key] = value
    return pairs


def _scope(local: bool) -> Scope:
    return Scope.LOCAL if local else Scope.ALL


@click.group()
@click.option("--log-level", default=None, help="Logging level (default: SERVUS_LOG_LEVEL or WARNING)")
@click.pass_context
def cli(ctx, log_level):
    """Announce and discover key/value services on the local network."""
    config = Config()
    logging.basicConfig(level=(log_level or config.log_level).upper(), format=LOG_FORMAT)
    ctx.obj = config


@cli.command()
@click.argument("service")
@click.option("--local", is_flag=True, help="Only instances running on this host")
@click.option("--time", "browse_time", default=DEFAULT_BROWSE_TIME_MS, show_default=True,
              help="Browse time in milliseconds")
@click.pass_obj
def discover(config: Config, service: str, local: bool, browse_time: int):
    """List the instances of SERVICE and their key/value pairs."""
    with ServiceDirectory(service, config) as directory:
        instances = directory.discover(_scope(local), browse_time)
        if not instances:
            click.echo(f"No instances of {service} found")
        for instance in instances:
            click.echo(instance)
            for key in directory.get_keys(instance):
                click.echo(f"    {key} = {directory.get(instance, key)}")


@cli.command()
@click.argument("service")
@click.option("--local", is_flag=True, help="Only instances running on this host")
@click.option("--interval", default=100, show_default=True, help="Browse interval in milliseconds")
@click.option("--duration", default=0.0, show_default=True, help="Seconds to browse, 0 until interrupted")
@click.pass_obj
def browse(config: Config, service: str, local: bool, interval: int, duration: float):
    """Continuously print instances of SERVICE as they come and go."""
    with ServiceDirectory(service, config) as directory:
        directory.add_listener(EchoListener(directory))
        result = directory.begin_browsing(_scope(local))
        if not result:
            raise click.ClickException(f"Can't browse {service}: {result}")

        end = time.monotonic() + duration
        try:
            while duration <= 0 or time.monotonic() < end:
                result = directory.browse(interval)
                if not result:
                    raise click.ClickException(f"Browsing {service} failed: {result}")
        except KeyboardInterrupt:
            logger.info("Keyboard interrupt received")
        finally:
            directory.end_browsing()


@cli.command()
@click.argument("service")
@click.option("--port", type=click.IntRange(0, 65535), required=True, help="Service port")
@click.option("--instance", default="", help="Instance name (default: hostname)")
@click.option("--set", "pairs", multiple=True, callback=_parse_pairs, help="key=value pair to announce")
@click.option("--duration", default=0.0, show_default=True, help="Seconds to announce, 0 until interrupted")
@click.pass_obj
def announce(config: Config, service: str, port: int, instance: str,
             pairs: Dict[str, str], duration: float):
    """Announce key/value pairs as an instance of SERVICE."""
    with ServiceDirectory(service, config) as directory:
        for key, value in pairs.items():
            directory.set(key, value)

        result = directory.announce(port, instance)
        if not result and result != Result.PENDING:
            raise click.ClickException(f"Can't announce {service}: {result}")
        click.echo(str(directory))

        end = time.monotonic() + duration
        try:
            while duration <= 0 or time.monotonic() < end:
                time.sleep(0.1)
        except KeyboardInterrupt:
            logger.info("Keyboard interrupt received")


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
