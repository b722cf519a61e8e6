from __future__ import annotations

from typing import Any, Dict, Iterable, Mapping

import typer


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def _format_value(kind: str, value: Any) -> str:
    if value is None:
        return "n/a"
    # only the barometric mean is computed; every other value is a stored sample
    if kind == "P" and isinstance(value, float):
        return f"{value:.2f}"
    return str(value)


def render_device(device: Mapping[str, Any]) -> None:
    kind = device.get("kind", "")
    echo_key_values(
        [
            ("identifier", device.get("identifier")),
            ("kind", kind),
            ("sample_count", device.get("sample_count")),
        ]
    )
    samples = device.get("samples") or []
    if samples:
        unit = device.get("unit", "")
        rendered = " ".join(str(sample) for sample in samples)
        typer.echo(f"samples ({unit}): {rendered}")


def render_devices(devices: Iterable[Mapping[str, Any]]) -> None:
    echo_heading("Devices")
    devices = list(devices)
    if not devices:
        typer.echo("No devices registered.")
        return
    for device in devices:
        typer.echo()
        render_device(device)


def render_summaries(summaries: Iterable[Mapping[str, Any]]) -> None:
    echo_heading("Summaries")
    summaries = list(summaries)
    if not summaries:
        typer.echo("No devices registered.")
        return
    for summary in summaries:
        kind = summary.get("kind", "")
        value = summary.get("value")
        if value is None:
            typer.echo(f"  - {summary.get('identifier')}: no samples")
            continue
        typer.echo(
            f"  - {summary.get('identifier')}: {summary.get('aggregation')} "
            f"{_format_value(kind, value)} {summary.get('unit', '')} "
            f"({summary.get('sample_count')} samples)"
        )


def render_report(report: Dict[str, Any]) -> None:
    echo_heading("Ingestion")
    echo_key_values(
        [
            ("status", report.get("status")),
            ("lines_read", report.get("lines_read")),
            ("records_accepted", report.get("records_accepted")),
            ("devices_created", report.get("devices_created")),
        ]
    )
    if report.get("failure_reason"):
        typer.echo(f"failure_reason: {report['failure_reason']}")

    issues = report.get("issues") or []
    typer.echo()
    echo_heading("Issues")
    if issues:
        for issue in issues:
            typer.echo(
                f"  - line {issue.get('line_number')}: {issue.get('reason')} ({issue.get('line')!r})"
            )
    else:
        typer.echo("No issues recorded.")
