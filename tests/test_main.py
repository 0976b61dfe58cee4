"""Tests for the ``python -m hookrelay`` entry point."""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from hookrelay.__main__ import main, run
from hookrelay.config import Settings
from hookrelay.exceptions import StorageError
from hookrelay.service import HookrelayService


@pytest.fixture(autouse=True)
def _keep_logging_config():
    with patch("hookrelay.__main__.configure_from_settings"):
        yield


class TestMain:
    """Tests for main()."""

    def test_prints_summary_and_exits_zero(self, capsys):
        summary = {"processed": 2, "delivered": 2, "retrying": 0, "failed": 0}
        with patch("hookrelay.__main__.run", new=AsyncMock(return_value=summary)):
            code = main([])

        assert code == 0
        assert json.loads(capsys.readouterr().out.splitlines()[-1]) == summary

    def test_selection_failure_exits_one(self, capsys):
        with patch(
            "hookrelay.__main__.run",
            new=AsyncMock(side_effect=StorageError("connection refused")),
        ):
            code = main([])

        assert code == 1
        output = json.loads(capsys.readouterr().out.splitlines()[-1])
        assert output["error"]["code"] == "storage_error"

    def test_single_delivery_flag(self):
        mock_run = AsyncMock(return_value={"kind": "skipped"})
        with patch("hookrelay.__main__.run", new=mock_run):
            main(["--delivery-id", "dlv_1"])

        assert mock_run.await_args.args[1] == "dlv_1"


class TestRun:
    """Tests for run() against a real SQLite store."""

    @pytest.mark.asyncio
    async def test_run_batch(self, database_url: str):
        settings = Settings(env="test", database_url=database_url)
        async with HookrelayService.create(settings) as relay:
            await relay.enqueue("42", "https://receiver.example.com/hook", {"a": 1})

        with patch("httpx.AsyncClient") as client_class:
            client = AsyncMock()
            client.post = AsyncMock(return_value=MagicMock(status_code=204))
            client_class.return_value = client
            result = await run(settings)

        assert result["processed"] == 1
        assert result["delivered"] == 1
        client.post.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_run_missing_delivery(self, database_url: str):
        settings = Settings(env="test", database_url=database_url)

        result = await run(settings, "dlv_missing")

        assert result == {"kind": "skipped", "delivery_id": "dlv_missing", "reason": "not_found"}
