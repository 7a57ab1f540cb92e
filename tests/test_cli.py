# tests/test_cli.py
"""CLI tests using Typer's CliRunner."""

import json
from unittest.mock import patch

import httpx
import pytest
from typer.testing import CliRunner

from conftest import make_page
from vodbridge.cli import app

runner = CliRunner()


@pytest.fixture
def cli_dispatcher(dispatcher):
    with patch("vodbridge.cli._get_dispatcher", return_value=dispatcher):
        yield dispatcher


@pytest.fixture
def cli_provider(provider):
    with patch("vodbridge.cli._get_provider", return_value=provider):
        yield provider


class TestQuery:
    def test_category(self, cli_dispatcher):
        result = runner.invoke(app, ["query", "ac=category"])
        assert result.exit_code == 0
        assert json.loads(result.stdout)["class"][0]["type_name"] == "伦理片"

    def test_search(self, cli_dispatcher, upstream):
        upstream.search_responses = [make_page(2)]
        result = runner.invoke(app, ["query", "wd=space", "pg=1", "--compact"])
        assert result.exit_code == 0
        assert len(json.loads(result.stdout)["list"]) == 2

    def test_error_envelope_exits_nonzero(self, cli_dispatcher):
        result = runner.invoke(app, ["query", "ac=search"])
        assert result.exit_code == 1
        assert json.loads(result.stdout)["error"]["type"] == "VALIDATION_ERROR"

    def test_bad_pair(self, cli_dispatcher):
        result = runner.invoke(app, ["query", "nonsense"])
        assert result.exit_code == 1


class TestRemoved:
    def test_lists_ids(self, cli_provider, upstream):
        upstream.removed_response = [{"id": "gone1"}, {"id": "gone2", "deleted": "2024-01-01"}]
        result = runner.invoke(app, ["removed"])
        assert result.exit_code == 0
        assert "gone1" in result.stdout
        assert "gone2  2024-01-01" in result.stdout

    def test_empty(self, cli_provider):
        result = runner.invoke(app, ["removed"])
        assert result.exit_code == 0
        assert "No removed videos" in result.stdout

    def test_provider_failure(self, cli_provider, upstream):
        upstream.removed_response = httpx.Response(500)
        result = runner.invoke(app, ["removed"])
        assert result.exit_code == 1


class TestServe:
    def test_http(self):
        with patch("uvicorn.run") as mock_run:
            result = runner.invoke(app, ["serve", "--port", "9999"])
        assert result.exit_code == 0
        mock_run.assert_called_once()
        assert mock_run.call_args.args[0] == "vodbridge.api:app"
        assert mock_run.call_args.kwargs["port"] == 9999

    def test_mcp_stdio(self):
        import vodbridge.server as server_mod

        with patch.object(server_mod.mcp, "run") as mock_run:
            result = runner.invoke(app, ["serve", "--stdio"])
        assert result.exit_code == 0
        mock_run.assert_called_once_with(transport="stdio")
