from __future__ import annotations

import json
import logging
import shutil
from dataclasses import asdict
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import typer
from pydantic import ValidationError

from scrollstory.config import AppConfig, configure_logging, load_config
from scrollstory.geo import Coordinate
from scrollstory.providers import ProviderError, build_provider
from scrollstory.route import ThresholdMode, route_length
from scrollstory.schemas import InputConfig, validate_waypoints
from scrollstory.timeline import Timeline, replay, replay_reports, route_state_at

app = typer.Typer(help="Derive scroll-synchronized step, media group and route state from progress values.")

logger = logging.getLogger(__name__)


def _app_config(path: Path, verbose: bool) -> AppConfig:
    level = logging.DEBUG if verbose else logging.WARNING
    configure_logging(level)
    try:
        config = load_config(path)
    except ValidationError as exc:
        raise typer.BadParameter(str(exc), param_hint="--input") from exc
    except json.JSONDecodeError as exc:
        raise typer.BadParameter(f"not valid JSON: {exc}", param_hint="--input") from exc
    return AppConfig(input_config=config, log_level=level)


def _waypoints_or_exit(config: InputConfig) -> Tuple[Coordinate, ...]:
    if config.route is None:
        typer.echo("Configuration has no route", err=True)
        raise typer.Exit(code=1)
    validation = validate_waypoints(config.route.waypoints)
    if not validation.ok:
        typer.echo(f"Invalid route: {validation.error}", err=True)
        raise typer.Exit(code=1)
    return validation.points


def _resolve_polyline(app_config: AppConfig, fetch: bool) -> Optional[List[Coordinate]]:
    config = app_config.input_config
    if config.route is None:
        return None
    if fetch:
        provider = build_provider(config.provider)
        validation = validate_waypoints(config.route.waypoints)
        if provider is None or not validation.ok:
            logger.warning("route geometry not fetched: no provider or invalid waypoints")
        else:
            try:
                return provider.get_route(validation.points)
            except ProviderError as exc:
                # absent geometry is a defined state; keep going without it
                logger.warning("%s", exc)
                typer.echo(f"Route geometry unavailable: {exc}", err=True)
                return None
    return config.route.polyline


def _parse_report(raw: str) -> Tuple[int, float]:
    index, sep, value = raw.partition(":")
    if not sep:
        raise typer.BadParameter(f"expected INDEX:VALUE, got {raw!r}", param_hint="--report")
    try:
        return int(index), float(value)
    except ValueError as exc:
        raise typer.BadParameter(f"expected INDEX:VALUE, got {raw!r}", param_hint="--report") from exc


def _read_values(path: Path) -> List[float]:
    values: List[float] = []
    for line in path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        try:
            values.append(float(line))
        except ValueError as exc:
            raise typer.BadParameter(f"not a number: {line!r}", param_hint="--values") from exc
    return values


def _echo_frames(frames: Sequence) -> None:
    for frame in frames:
        typer.echo(json.dumps(asdict(frame)))


@app.command()
def validate(
    input: Path = typer.Option(..., "--input", exists=True),
    verbose: bool = typer.Option(False, "--verbose"),
) -> None:
    app_config = _app_config(input, verbose)
    config = app_config.input_config
    if config.route is not None:
        _waypoints_or_exit(config)
    typer.echo(f"Valid configuration ({config.step_count()} steps, layout {config.timeline.layout})")


@app.command(name="replay")
def replay_command(
    input: Path = typer.Option(..., "--input", exists=True),
    progress: Optional[List[float]] = typer.Option(None, "--progress", help="Progress value; repeat for a sequence."),
    values: Optional[Path] = typer.Option(None, "--values", exists=True, help="File with one progress value per line."),
    report: Optional[List[str]] = typer.Option(None, "--report", help="Per-step progress as INDEX:VALUE."),
    fetch: bool = typer.Option(False, "--fetch", help="Fetch route geometry from the configured provider."),
    verbose: bool = typer.Option(False, "--verbose"),
) -> None:
    app_config = _app_config(input, verbose)
    timeline = Timeline(app_config.input_config, polyline=_resolve_polyline(app_config, fetch))
    if timeline.route_error is not None:
        typer.echo(f"Invalid route: {timeline.route_error}", err=True)
    if report:
        _echo_frames(replay_reports(timeline, [_parse_report(raw) for raw in report]))
        return
    sequence = list(progress or [])
    if values is not None:
        sequence += _read_values(values)
    if not sequence:
        raise typer.BadParameter("give at least one --progress, --values or --report")
    _echo_frames(replay(timeline, sequence))


@app.command()
def route(
    input: Path = typer.Option(..., "--input", exists=True),
    progress: float = typer.Option(1.0, "--progress"),
    mode: Optional[ThresholdMode] = typer.Option(None, "--mode", help="projection or vertex; defaults to the config."),
    fetch: bool = typer.Option(False, "--fetch"),
    verbose: bool = typer.Option(False, "--verbose"),
) -> None:
    app_config = _app_config(input, verbose)
    config = app_config.input_config
    waypoints = _waypoints_or_exit(config)
    polyline = _resolve_polyline(app_config, fetch)
    mode = mode or config.route.threshold_mode
    state = route_state_at(progress, waypoints, polyline, mode)
    payload = {
        "progress": progress,
        "length": route_length(polyline or []),
        "sliced": [list(p) for p in state.sliced],
        "thresholds": list(state.thresholds),
        "visible": list(state.visible),
    }
    typer.echo(json.dumps(payload))


@app.command()
def clear_cache(
    provider: str = typer.Option("osrm", "--provider", help="Cache namespace: osrm, mapbox, or all."),
    cache_dir: Optional[Path] = typer.Option(None, "--cache-dir", help="Base cache directory."),
    input: Optional[Path] = typer.Option(None, "--input", exists=True, help="Take the cache directory from a config."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt."),
) -> None:
    provider_name = provider.strip().lower()
    if provider_name not in {"osrm", "mapbox", "all"}:
        raise typer.BadParameter("--provider must be one of: osrm, mapbox, all")
    if cache_dir is None:
        cache_dir = _app_config(input, verbose=False).cache_dir if input else Path(".cache/routes")

    targets = [cache_dir] if provider_name == "all" else [cache_dir / provider_name]
    existing_targets = [target for target in targets if target.exists()]
    if not existing_targets:
        typer.echo("No cache directory found to clear.")
        return

    for target in existing_targets:
        if not yes and not typer.confirm(f"Delete cache at '{target}'?"):
            typer.echo("Cancelled.")
            return
        shutil.rmtree(target)
        typer.echo(f"Cleared cache: {target}")


if __name__ == "__main__":
    app()
