"""Tests for the formchain CLI."""

from typer.testing import CliRunner

from formchain import cli, step_response
from formchain.contracts import StepResponse
from formchain.transports.inmemory import InMemoryStepTransport

runner = CliRunner()


def fake_transport(handlers):
    def factory(backend=None, config=None):
        return InMemoryStepTransport(handlers)

    return factory


def test_run_prints_combined_result(monkeypatch):
    monkeypatch.setattr(
        cli,
        "get_transport",
        fake_transport(
            {
                "seo": lambda form: step_response("seo", data={"meta": {"t": 1}}),
                "save": lambda form: step_response("save", data={"id": 7}),
            }
        ),
    )

    result = runner.invoke(cli.app, ["run", "seo", "save", "--seed", '{"title": "x"}'])

    assert result.exit_code == 0, result.output
    assert "[ 50%] seo" in result.output
    assert "[100%] complete" in result.output
    assert "Completed 2 chained actions" in result.output
    assert '"id": 7' in result.output


def test_run_exits_nonzero_on_failure(monkeypatch):
    monkeypatch.setattr(
        cli,
        "get_transport",
        fake_transport({"seo": lambda form: StepResponse(status=500, body="boom")}),
    )

    result = runner.invoke(cli.app, ["run", "seo"])

    assert result.exit_code == 1
    assert "non_success_status" in result.output


def test_run_rejects_bad_seed():
    result = runner.invoke(cli.app, ["run", "seo", "--seed", "[1, 2]"])
    assert result.exit_code == 1
    assert "--seed must be a JSON object" in result.output


def test_config_command_prints_yaml(tmp_path, monkeypatch):
    monkeypatch.delenv("FORMCHAIN_MERGE_POLICY", raising=False)
    config_path = tmp_path / "formchain.yaml"
    config_path.write_text("merge_policy: shallow\n")

    result = runner.invoke(cli.app, ["config", "--config", str(config_path)])

    assert result.exit_code == 0
    assert "merge_policy: shallow" in result.output
    assert "backend: inmemory" in result.output
