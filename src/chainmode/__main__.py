"""CLI entry point for chainmode."""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path

import click

from chainmode import __version__
from chainmode.config import Config, ConfigError, load_config
from chainmode.engine.collaborators import ProviderInvoker, RegistryExecutor
from chainmode.engine.modes import ModeRegistry, run_chain
from chainmode.engine.pipeline import DoneWithExtra, Failed, RunResult
from chainmode.events.bus import Event, EventBus
from chainmode.exceptions import ModeError
from chainmode.replay import TranscriptError, load_transcript


def _configure_logging(config: Config, verbose: bool) -> None:
    level = logging.DEBUG if verbose else getattr(logging, config.logging.level, logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@click.group()
@click.version_option(version=__version__, prog_name="chainmode")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="Path to chainmode.toml configuration file.",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None, verbose: bool) -> None:
    """chainmode: drive tool-calling LLM chains with execution modes."""
    ctx.ensure_object(dict)
    try:
        config = load_config(config_path)
    except ConfigError as e:
        click.echo(f"Configuration error: {e}", err=True)
        sys.exit(1)
    ctx.obj["config"] = config
    _configure_logging(config, verbose)


@cli.command()
@click.pass_context
def modes(ctx: click.Context) -> None:
    """List the available execution modes."""
    default = ctx.obj["config"].modes.default_mode
    for name in ModeRegistry().names():
        marker = " (default)" if name == default else ""
        click.echo(f"{name}{marker}")


def _print_event(event: Event) -> None:
    details = ", ".join(f"{k}={v}" for k, v in event.data.items())
    click.echo(f"  [{event.event_type}] {details}")


def _print_result(result: RunResult, show_transcript: bool) -> None:
    chain = result.chain
    click.echo(f"Status:    {result.status}")
    click.echo(f"Runs:      {chain.run_count}")
    if isinstance(result, DoneWithExtra):
        click.echo(f"Extra:     {result.extra}")
    if isinstance(result, Failed):
        click.echo(f"Reason:    {type(result.reason).__name__}: {result.reason}")
    if show_transcript:
        click.echo("Transcript:")
        for message in chain.messages:
            label = message.role
            if message.tool_calls:
                names = ", ".join(tc.name for tc in message.tool_calls)
                label = f"{label} -> {names}"
            elif message.name:
                label = f"{label}:{message.name}"
            click.echo(f"  {label}: {message.content}")


@cli.command()
@click.argument("script", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--mode", "mode_name", default=None, help="Mode name. Defaults to config.")
@click.option("--max-runs", type=int, default=None, help="Pause after this many model calls.")
@click.option(
    "--tool-name", "tool_names", multiple=True,
    help="Tool that ends an until_tool_used run. Repeatable.",
)
@click.option(
    "--continue", "continue_flag", is_flag=True,
    help="In step mode, allow one extra round.",
)
@click.option("--events", "show_events", is_flag=True, help="Print run events as they happen.")
@click.option("--transcript/--no-transcript", "show_transcript", default=True)
@click.pass_context
def replay(
    ctx: click.Context,
    script: Path,
    mode_name: str | None,
    max_runs: int | None,
    tool_names: tuple[str, ...],
    continue_flag: bool,
    show_events: bool,
    show_transcript: bool,
) -> None:
    """Replay a YAML transcript of scripted model and tool outcomes."""
    config: Config = ctx.obj["config"]
    try:
        transcript = load_transcript(script)
    except TranscriptError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    options: dict = {}
    if max_runs is not None:
        options["max_runs"] = max_runs
    if tool_names:
        options["tool_name"] = list(tool_names)
    if continue_flag:
        options["continue"] = True

    bus = EventBus()
    if show_events:
        bus.subscribe(_print_event)

    invoker = ProviderInvoker(
        transcript.provider,
        tools=transcript.tools,
        retry=config.retry,
    )
    try:
        result = asyncio.run(run_chain(
            transcript.chain,
            mode=mode_name,
            invoker=invoker,
            executor=RegistryExecutor(transcript.tools),
            events=bus,
            config=config,
            **options,
        ))
    except ModeError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    _print_result(result, show_transcript)
    if isinstance(result, Failed):
        sys.exit(1)


if __name__ == "__main__":
    cli()
