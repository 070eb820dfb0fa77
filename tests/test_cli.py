from __future__ import annotations

import json

import pytest
from click.testing import CliRunner

from dnsbench import cli
from dnsbench.runner import TestRunner


@pytest.fixture
def patched_runner(monkeypatch, fake_dns, fake_http, make_response):
    created = []

    def factory(config, **kwargs):
        runner = TestRunner(
            config,
            dns_transport=fake_dns(lambda a, d: (make_response(d), 10.0)),
            http_transport=fake_http(),
            **kwargs,
        )
        created.append(runner)
        return runner

    monkeypatch.setattr(cli, "TestRunner", factory)
    monkeypatch.setattr(cli, "configure_logging", lambda verbose: None)
    return created


def test_list_servers() -> None:
    result = CliRunner().invoke(cli.main, ["list-servers"])

    assert result.exit_code == 0
    assert "cloudflare" in result.output
    assert "8.8.8.8:53" in result.output


def test_run_json_output(patched_runner) -> None:
    result = CliRunner().invoke(
        cli.main,
        ["run", "-s", "google", "-c", "Home=10.0.0.1", "-d", "a.com", "-d", "b.com", "-n", "2", "--json"],
    )

    assert result.exit_code == 0, result.output
    data = json.loads(result.output)
    assert data["metadata"]["dns_samples"] == (2 + 1) * 2 * 2
    assert data["metadata"]["http_samples"] == 2 * 2
    assert {s["name"] for s in data["top_servers"]} == {"Google DNS", "Home"}
    assert patched_runner[0].config.repetitions == 2


def test_run_writes_output_file(patched_runner, tmp_path) -> None:
    target = tmp_path / "report.txt"

    result = CliRunner().invoke(
        cli.main,
        ["run", "-s", "quad9", "-d", "a.com", "-n", "1", "--no-http", "-q", "-o", str(target)],
    )

    assert result.exit_code == 0, result.output
    saved = json.loads((tmp_path / "report.json").read_text(encoding="utf-8"))
    assert saved["http"] == []
    assert len(saved["servers"]) == 2


def test_run_live_output(patched_runner) -> None:
    result = CliRunner().invoke(cli.main, ["run", "-s", "cloudflare", "-d", "a.com", "-n", "1"])

    assert result.exit_code == 0, result.output
    assert "1.1.1.1:53" in result.output
    assert "BENCHMARK COMPLETED" in result.output


def test_run_unknown_server(patched_runner) -> None:
    result = CliRunner().invoke(cli.main, ["run", "-s", "nope"])

    assert result.exit_code == 1
    assert "Unknown server" in result.output
    assert patched_runner == []


def test_run_invalid_repetitions(patched_runner) -> None:
    result = CliRunner().invoke(cli.main, ["run", "-s", "google", "-n", "0"])

    assert result.exit_code == 2
    assert "Repetitions" in result.output
    assert patched_runner == []


def test_run_bad_custom_server(patched_runner) -> None:
    result = CliRunner().invoke(cli.main, ["run", "-c", "Home="])

    assert result.exit_code == 2


def test_run_custom_server_with_malformed_port(patched_runner) -> None:
    result = CliRunner().invoke(cli.main, ["run", "-c", "X=1.2.3.4:abc"])

    assert result.exit_code == 2
    assert "Invalid port" in result.output
    assert patched_runner == []


def test_run_rejects_invalid_domain(patched_runner) -> None:
    result = CliRunner().invoke(cli.main, ["run", "-s", "google", "-d", "foo..com"])

    assert result.exit_code == 2
    assert "Invalid domain" in result.output
    assert patched_runner == []
