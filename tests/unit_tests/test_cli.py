"""Unit tests for the command-line runner."""

import json
from unittest.mock import AsyncMock
from unittest.mock import patch

import pytest

from tests.consts import TEST_POOL_ID
from tests.consts import TEST_SUBJECT_ID
from wfp_action import cli
from wfp_action.errors import AuthError
from wfp_action.errors import RetryableApiError


@pytest.fixture
def params_file(tmp_path):
    path = tmp_path / "params.json"
    path.write_text(json.dumps({"workforce_pool_id": TEST_POOL_ID, "subject_id": TEST_SUBJECT_ID}))
    return str(path)


@pytest.fixture(autouse=True)
def restore_logger():
    yield
    cli.configure_logger()


class TestMain:
    """Tests for cli.main."""

    @patch("wfp_action.cli.action.invoke", new_callable=AsyncMock)
    def test_invoke_success(self, mock_invoke, params_file, capsys):
        mock_invoke.return_value = {"status": "success", "workforce_pool_id": TEST_POOL_ID}

        exit_code = cli.main(["invoke", "--params", params_file])

        assert exit_code == 0
        assert json.loads(capsys.readouterr().out) == {"status": "success", "workforce_pool_id": TEST_POOL_ID}
        args, _ = mock_invoke.call_args
        assert args[0] == {"workforce_pool_id": TEST_POOL_ID, "subject_id": TEST_SUBJECT_ID}
        assert args[1] == {}

    @patch("wfp_action.cli.action.invoke", new_callable=AsyncMock)
    def test_invoke_retryable_exit_code(self, mock_invoke, params_file, capsys):
        mock_invoke.side_effect = RetryableApiError("Google Cloud API error (503)", status_code=503)

        exit_code = cli.main(["invoke", "--params", params_file])

        assert exit_code == cli.EXIT_RETRYABLE
        output = json.loads(capsys.readouterr().out)
        assert output == {"status": "failed", "retryable": True, "error": "Google Cloud API error (503)"}

    @patch("wfp_action.cli.action.invoke", new_callable=AsyncMock)
    def test_invoke_fatal_exit_code(self, mock_invoke, params_file, capsys):
        mock_invoke.side_effect = AuthError("Missing required secret")

        exit_code = cli.main(["invoke", "--params", params_file])

        assert exit_code == cli.EXIT_FATAL
        assert json.loads(capsys.readouterr().out)["retryable"] is False

    def test_halt(self, params_file, capsys):
        exit_code = cli.main(["halt", "--params", params_file])

        assert exit_code == 0
        output = json.loads(capsys.readouterr().out)
        assert output["status"] == "halted"
        assert output["workforce_pool_id"] == TEST_POOL_ID

    def test_context_file_is_passed(self, params_file, tmp_path):
        context_path = tmp_path / "context.json"
        context_path.write_text(json.dumps({"secrets": {"BEARER_AUTH_TOKEN": "t"}}))

        with patch("wfp_action.cli.action.invoke", new_callable=AsyncMock) as mock_invoke:
            mock_invoke.return_value = {"status": "success"}
            cli.main(["invoke", "--params", params_file, "--context", str(context_path)])

        args, _ = mock_invoke.call_args
        assert args[1] == {"secrets": {"BEARER_AUTH_TOKEN": "t"}}

    def test_unreadable_params(self, tmp_path, capsys):
        exit_code = cli.main(["invoke", "--params", str(tmp_path / "missing.json")])

        assert exit_code == cli.EXIT_FATAL
        assert "Unable to read input" in json.loads(capsys.readouterr().out)["error"]

    def test_unknown_entry_point(self, params_file):
        with pytest.raises(SystemExit):
            cli.main(["delete-everything", "--params", params_file])
