import json

import requests
from typer.testing import CliRunner

from scrollstory.cli import app
from scrollstory.providers import build_provider
from scrollstory.schemas import ProviderConfig

runner = CliRunner()

ROUTE_CONFIG = {
    "timeline": {"layout": "vertical"},
    "route": {
        "waypoints": [[0, 0], [0, 5], [0, 10]],
        "polyline": [[0, 0], [0, 3], [0, 10]],
    },
}


def _write(tmp_path, data, name="config.json"):
    path = tmp_path / name
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def test_validate(tmp_path):
    result = runner.invoke(app, ["validate", "--input", str(_write(tmp_path, ROUTE_CONFIG))])
    assert result.exit_code == 0
    assert "Valid configuration (3 steps, layout vertical)" in result.output


def test_validate_rejects_bad_route(tmp_path):
    data = {"route": {"waypoints": [[0, 0]]}}
    result = runner.invoke(app, ["validate", "--input", str(_write(tmp_path, data))])
    assert result.exit_code == 1
    assert "waypoint count out of bounds" in result.output


def test_validate_rejects_bad_config(tmp_path):
    data = {"provider": {"name": "mapbox"}}
    result = runner.invoke(app, ["validate", "--input", str(_write(tmp_path, data))])
    assert result.exit_code == 2


def test_replay_prints_one_frame_per_value(tmp_path):
    values = tmp_path / "values.txt"
    values.write_text("# recorded\n0.5\n1.0\n", encoding="utf-8")
    result = runner.invoke(
        app,
        ["replay", "--input", str(_write(tmp_path, ROUTE_CONFIG)), "--progress", "0", "--values", str(values)],
    )
    assert result.exit_code == 0
    frames = [json.loads(line) for line in result.output.strip().splitlines()]
    assert [f["timeline"]["active_index"] for f in frames] == [0, 1, 2]
    assert frames[0]["route"]["sliced"] == [[0.0, 0.0]]
    assert frames[-1]["route"]["visible"] == [True, True, True]


def test_replay_member_reports(tmp_path):
    data = {"timeline": {"layout": "sticky", "steps": 2}, "media_keys": ["a", "a"]}
    result = runner.invoke(
        app, ["replay", "--input", str(_write(tmp_path, data)), "--report", "0:1.0", "--report", "1:0.5"]
    )
    assert result.exit_code == 0
    frames = [json.loads(line) for line in result.output.strip().splitlines()]
    assert frames[-1]["timeline"]["active_index"] == 1
    assert frames[-1]["timeline"]["groups"][0]["progress"] == 0.75


def test_replay_needs_values(tmp_path):
    result = runner.invoke(app, ["replay", "--input", str(_write(tmp_path, ROUTE_CONFIG))])
    assert result.exit_code == 2


def test_route_command(tmp_path):
    result = runner.invoke(app, ["route", "--input", str(_write(tmp_path, ROUTE_CONFIG)), "--progress", "0.5"])
    assert result.exit_code == 0
    payload = json.loads(result.output)
    assert payload["length"] == 10.0
    assert payload["thresholds"][0] == 0.0
    assert payload["thresholds"][-1] == 1.0
    assert abs(payload["sliced"][-1][1] - 5.0) < 1e-9

    result = runner.invoke(
        app, ["route", "--input", str(_write(tmp_path, ROUTE_CONFIG)), "--progress", "0.5", "--mode", "vertex"]
    )
    assert abs(json.loads(result.output)["thresholds"][1] - 0.3) < 1e-9


def test_clear_cache(tmp_path):
    target = tmp_path / "osrm"
    target.mkdir()
    (target / "route.json").write_text("[]", encoding="utf-8")
    result = runner.invoke(app, ["clear-cache", "--cache-dir", str(tmp_path), "--yes"])
    assert result.exit_code == 0
    assert not target.exists()
    result = runner.invoke(app, ["clear-cache", "--cache-dir", str(tmp_path), "--yes"])
    assert "No cache directory found" in result.output


def test_route_fetch_with_corrupt_cache_has_no_geometry(tmp_path, monkeypatch):
    def offline(url, params=None, timeout=None):
        raise AssertionError("cache should be read first")

    monkeypatch.setattr(requests, "get", offline)
    provider_config = ProviderConfig(name="osrm", cache_dir=str(tmp_path / "cache"))
    path = build_provider(provider_config)._cache_path([(0.0, 0.0), (0.0, 5.0), (0.0, 10.0)])
    path.parent.mkdir(parents=True)
    path.write_text("{truncated", encoding="utf-8")
    data = dict(ROUTE_CONFIG, provider=provider_config.model_dump())

    result = runner.invoke(app, ["route", "--input", str(_write(tmp_path, data)), "--fetch"])
    assert result.exit_code == 0
    assert "Route geometry unavailable" in result.output
    payload = json.loads(result.output.strip().splitlines()[-1])
    assert payload["sliced"] == []
    assert payload["length"] == 0.0
