"""Command line interface for running form chains."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import List, Optional

import typer
import yaml

from formchain import ChainRunner, InitialResult, ProgressPublisher, step_response
from formchain.config import load_config
from formchain.constants import INITIAL_STEP
from formchain.merge import MergePolicy
from formchain.result import Err
from formchain.transports import get_transport

app = typer.Typer(help="CLI for formchain step chains")


@app.callback()
def main() -> None:
    """formchain CLI entry point."""
    pass


async def _execute(runner: ChainRunner, transport, steps: List[str], seed: dict):
    async with transport:
        initial = InitialResult.success(step_response(INITIAL_STEP, data=seed))
        return await runner.execute(steps, initial)


@app.command("run")
def run(
    steps: List[str] = typer.Argument(..., help="Step names, in execution order"),
    seed: Optional[str] = typer.Option(
        None, help="JSON object used as the initial payload"
    ),
    base_url: Optional[str] = typer.Option(
        None, help="Page URL whose form actions are called"
    ),
    policy: Optional[MergePolicy] = typer.Option(None, help="Payload merge policy"),
    backend: str = typer.Option("http", help="Step transport backend"),
    config_path: Optional[Path] = typer.Option(None, "--config", help="Config file"),
) -> None:
    """
    Run a chain of form actions and print the combined result.

    Example:
        formchain run markdown seo save publish --seed '{"title": "Hello"}'
    """
    config = load_config(str(config_path) if config_path else None)
    logging.basicConfig(level=config.log_level)
    if base_url:
        config.transport.http.base_url = base_url

    seed_data: dict = {}
    if seed:
        try:
            seed_data = json.loads(seed)
        except ValueError as e:
            typer.secho(f"Invalid --seed JSON: {e}", fg=typer.colors.RED)
            raise typer.Exit(code=1)
        if not isinstance(seed_data, dict):
            typer.secho("--seed must be a JSON object", fg=typer.colors.RED)
            raise typer.Exit(code=1)

    publisher = ProgressPublisher()
    publisher.subscribe(
        lambda record: typer.echo(f"[{record.percent:>3}%] {record.step}")
    )
    transport = get_transport(backend, config=config)
    runner = ChainRunner(
        transport, publisher=publisher, merge_policy=policy, config=config
    )

    outcome = asyncio.run(_execute(runner, transport, steps, seed_data))
    if isinstance(outcome, Err):
        typer.secho(
            f"Chain failed [{outcome.error.kind}]: {outcome.error.message}",
            fg=typer.colors.RED,
        )
        raise typer.Exit(code=1)

    typer.echo(outcome.value.model_dump_json(indent=2))


@app.command("config")
def show_config(
    config_path: Optional[Path] = typer.Option(None, "--config", help="Config file"),
) -> None:
    """Print the effective configuration as YAML."""
    config = load_config(str(config_path) if config_path else None)
    typer.echo(yaml.safe_dump(config.model_dump(mode="json"), sort_keys=False))


if __name__ == "__main__":
    app()
