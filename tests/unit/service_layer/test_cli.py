"""
Unit Tests for the command-line entry point
"""

from unittest.mock import AsyncMock, patch

import orjson
import pytest

from prdv_cache.cli import build_parser, main
from prdv_cache.core.exceptions import BackendInitializationError


def _result_document(output: str) -> dict:
    """Pick the indented JSON result out of stdout, ignoring interleaved log lines."""
    lines = output.splitlines()
    start = lines.index("{")
    end = lines.index("}", start)
    return orjson.loads("\n".join(lines[start:end + 1]))


@pytest.mark.unit
class TestCli:
    """Test argument parsing and command dispatch."""

    def test_load_test_defaults(self):
        args = build_parser().parse_args(["load-test"])

        assert args.records == 10_000
        assert args.batch_size == 100
        assert args.concurrency == 10
        assert args.write_mode == "item"
        assert args.backend is None

    def test_verify_on_memory_backend(self, capsys):
        assert main(["--backend", "memory", "verify"]) == 0

        output = _result_document(capsys.readouterr().out)
        assert output["recordsProcessed"] == 10
        assert output["successfulOperations"] == 10
        assert output["backendType"] == "memory"

    def test_invalid_parameters_exit_with_error_document(self, capsys):
        assert main(["--backend", "memory", "load-test", "--records", "0"]) == 2

        output = _result_document(capsys.readouterr().out)
        assert output["error_type"] == "InvalidLoadTestParametersError"

    def test_failed_initialization_still_closes_store(self, capsys):
        store = AsyncMock()
        store.backend_type = "table"
        store.initialize.side_effect = BackendInitializationError("table unavailable")

        with patch("prdv_cache.cli.create_store", return_value=store):
            assert main(["--backend", "table", "verify"]) == 2

        store.close.assert_awaited_once()
        output = _result_document(capsys.readouterr().out)
        assert output["error_type"] == "BackendInitializationError"
