"""Amplifier ACP CLI.

Commands:
    amplifier-acp stdio     - Run the echo agent over stdin/stdout
"""

from __future__ import annotations

import asyncio
import logging
import sys

import click

from .agent import AgentSideConnection
from .config import ConnectionConfig
from .echo import EchoAgent
from .streams import stdio_streams

logger = logging.getLogger(__name__)

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def configure_logging(level: str = "WARNING") -> None:
    """Send all logging to stderr.

    With the stdio transport stdout carries protocol frames only; any log
    line written there would corrupt the stream for the client.
    """
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setFormatter(
        logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    )
    root_logger.addHandler(stderr_handler)
    root_logger.setLevel(level.upper())


async def run_stdio_agent(config: ConnectionConfig) -> None:
    writer, reader = await stdio_streams(limit=config.max_frame_bytes)
    conn = AgentSideConnection(EchoAgent, writer, reader, config=config)
    await conn.listen()


@click.group(invoke_without_command=True)
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="WARNING",
    envvar="AMPLIFIER_ACP_LOG_LEVEL",
    show_default=True,
    help="Log level (logs always go to stderr)",
)
@click.pass_context
def main(ctx: click.Context, log_level: str) -> None:
    """Amplifier ACP - Agent Client Protocol connection tools."""
    configure_logging(log_level)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@main.command()
def stdio() -> None:
    """Run the echo agent over stdio.

    Reads JSON-RPC messages from stdin (one per line).
    Writes JSON-RPC messages to stdout (one per line).
    """
    try:
        config = ConnectionConfig.from_env()
    except ValueError as e:
        raise click.UsageError(str(e)) from e

    click.echo("Starting ACP echo agent on stdio", err=True)
    try:
        asyncio.run(run_stdio_agent(config))
    except KeyboardInterrupt:
        pass
    logger.info("stdio agent stopped")


if __name__ == "__main__":
    main()
