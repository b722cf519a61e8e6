from __future__ import annotations

import signal
import sys
from contextlib import ExitStack
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import typer

from app.schemas import DeviceSnapshot, DeviceSummaryOut
from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_device, render_devices, render_report, render_summaries
from datastore.registry import DeviceRegistry
from logging_config import configure_logging
from models.errors import StreamReadError
from models.records import DeviceKind
from services.aggregator import Aggregator
from services.decoder import RecordDecoder
from services.ingestor import IngestionService
from settings import get_settings
from streams.line_reader import LineReader
from streams.sources import FileByteSource


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for ingesting device telemetry and querying the registry service.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        typer.secho("CLI state is uninitialized.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    return state


def _parse_kind(value: str) -> DeviceKind:
    kind = DeviceKind.from_tag(value)
    if kind is None:
        raise typer.BadParameter("Kind must be T (thermal) or P (barometric).")
    return kind


def _parse_number(value: str) -> int | float:
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value)
    except ValueError as exc:
        raise typer.BadParameter(f"{value!r} is not a number.") from exc


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Registry API base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds to wait for each API request.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, request_timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("ingest")
def ingest_command(
    source: str = typer.Argument(..., help="Capture file, FIFO or device node to read; '-' for stdin."),
    follow: bool = typer.Option(
        False,
        "--follow/--no-follow",
        help="Keep polling for new bytes at end of file instead of stopping.",
    ),
    poll_interval: Optional[float] = typer.Option(
        None,
        "--poll-interval",
        help="Seconds to wait between reads when no bytes are ready.",
    ),
    banner: Optional[List[str]] = typer.Option(
        None,
        "--banner",
        help="Substring marking a device banner line (repeatable). Overrides TELEMETRY_BANNER_MARKERS.",
    ),
) -> None:
    """Run the ingestion pipeline locally and print every device with its aggregate."""
    configure_logging()
    settings = get_settings()
    registry = DeviceRegistry()
    service = IngestionService(registry=registry, decoder=RecordDecoder(), aggregator=Aggregator())

    with ExitStack() as resources:
        if source == "-":
            handle = sys.stdin.buffer
        else:
            path = Path(source)
            if not path.exists():
                raise typer.BadParameter(f"Source {path} does not exist.")
            handle = resources.enter_context(path.open("rb", buffering=0))

        byte_source = FileByteSource(handle, follow=follow)
        resources.callback(byte_source.release)
        reader = LineReader(
            byte_source,
            banner_markers=banner or settings.banner_markers,
            poll_interval=poll_interval if poll_interval is not None else settings.poll_interval,
            chunk_size=settings.read_chunk_size,
        )
        previous_handler = signal.signal(signal.SIGINT, lambda _signum, _frame: reader.stop())
        try:
            report = service.run(reader)
        except StreamReadError as exc:
            typer.secho(str(exc), fg=typer.colors.RED, err=True)
            render_report(service.report().model_dump(mode="json"))
            raise typer.Exit(code=1) from exc
        finally:
            signal.signal(signal.SIGINT, previous_handler)

    render_devices(
        DeviceSnapshot.from_record(record).model_dump(mode="json") for record in registry
    )
    typer.echo()
    render_summaries(
        DeviceSummaryOut.from_summary(summary).model_dump(mode="json")
        for summary in service.summaries()
    )
    typer.echo()
    render_report(report.model_dump(mode="json"))


@app.command("devices")
def devices_command(ctx: typer.Context) -> None:
    """List devices registered in the service."""
    state = _get_state(ctx)
    render_devices(state.client.list_devices())


@app.command("show")
def show_command(
    ctx: typer.Context,
    identifier: str = typer.Argument(..., help="Device identifier."),
) -> None:
    """Show one device and its sample history."""
    state = _get_state(ctx)
    render_device(state.client.get_device(identifier))


@app.command("register")
def register_command(
    ctx: typer.Context,
    identifier: str = typer.Argument(..., help="Device identifier, e.g. TEMP-001."),
    kind: str = typer.Option(..., "--kind", "-k", help="T for thermal, P for barometric."),
) -> None:
    """Register a device without an initial sample."""
    state = _get_state(ctx)
    device_kind = _parse_kind(kind)
    device = state.client.register_device(identifier, device_kind.value)
    typer.secho(
        f"Registered {device_kind.label} device {device.get('identifier')}.",
        fg=typer.colors.GREEN,
    )


@app.command("sample")
def sample_command(
    ctx: typer.Context,
    identifier: str = typer.Argument(..., help="Identifier of a registered device."),
    value: str = typer.Argument(..., help="Measurement to append."),
) -> None:
    """Append a sample to a registered device."""
    state = _get_state(ctx)
    device = state.client.add_sample(identifier, _parse_number(value))
    typer.secho(
        f"Stored sample for {identifier} ({device.get('sample_count')} samples).",
        fg=typer.colors.GREEN,
    )


@app.command("summary")
def summary_command(ctx: typer.Context) -> None:
    """Aggregate every registered device."""
    state = _get_state(ctx)
    render_summaries(state.client.list_summaries())


@app.command("clear")
def clear_command(
    ctx: typer.Context,
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt."),
) -> None:
    """Release every device held by the service."""
    state = _get_state(ctx)
    if not yes:
        typer.confirm("Release every registered device?", abort=True)
    state.client.clear_devices()
    typer.secho("Registry cleared.", fg=typer.colors.GREEN)
