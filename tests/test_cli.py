"""
CLI tests for zk-pig.

Run with: pytest tests/test_cli.py -v
"""

import json
import os
import signal
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from zk_pig.block_number import BlockTag
from zk_pig.cli import app, cancel_on_signals, configure_logging
from zk_pig.config import GlobalConfig, LogFormat, LogLevel, resolve_config

from .recording_service import RecordingService

BACKEND = "tests.recording_service:RecordingService"


class CLITestHelper:
    """Helper class for CLI testing patterns."""

    @staticmethod
    def assert_success(result):
        assert result.exit_code == 0, f"CLI result: {result.output}"

    @staticmethod
    def assert_error_with_message(result, expected_message: str):
        assert result.exit_code == 1, f"CLI result: {result.output}"
        assert expected_message in result.output


@pytest.mark.integration
class TestZkPigCLIBase:
    """Base class for CLI tests with common functionality."""

    def setup_method(self):
        self.runner = CliRunner()
        self.helper = CLITestHelper()
        self.svc = RecordingService()

    def invoke(self, args, svc=None, **kwargs):
        with patch("zk_pig.core.new_service", return_value=svc or self.svc):
            return self.runner.invoke(app, args, **kwargs)


@pytest.mark.integration
class TestStageCommands(TestZkPigCLIBase):
    def test_preflight_calls_start_preflight_stop(self):
        result = self.invoke(["preflight", "-b", "123"])

        self.helper.assert_success(result)
        assert self.svc.calls == [("start",), ("preflight", 123), ("stop",)]
        assert "preflight completed for block 123" in result.output

    def test_generate_defaults_to_latest(self):
        result = self.invoke(["generate"])

        self.helper.assert_success(result)
        assert self.svc.calls == [
            ("start",),
            ("generate", BlockTag.LATEST),
            ("stop",),
        ]

    @pytest.mark.parametrize(
        "command", ["generate", "preflight", "prepare", "execute"]
    )
    def test_each_command_runs_its_stage(self, command):
        result = self.invoke([command, "--block-number", "0x10"])

        self.helper.assert_success(result)
        assert self.svc.calls == [("start",), (command, 16), ("stop",)]

    def test_service_created_from_backend_option(self):
        result = self.runner.invoke(
            app, ["--service-backend", BACKEND, "prepare", "-b", "earliest"]
        )
        self.helper.assert_success(result)

    def test_missing_backend(self):
        result = self.runner.invoke(app, ["execute"])
        self.helper.assert_error_with_message(
            result, "failed to create prover inputs service"
        )

    def test_invalid_block_number(self):
        result = self.invoke(["prepare", "-b", "yesterday"])

        self.helper.assert_error_with_message(result, "invalid block number")
        assert self.svc.names == ["start"]

    def test_oversized_block_number(self):
        result = self.invoke(["execute", "-b", "9" * 5000])

        self.helper.assert_error_with_message(result, "invalid block number")
        assert "Unexpected error" not in result.output
        assert self.svc.names == ["start"]

    def test_start_failure(self):
        svc = RecordingService(fail_on={"start"})
        result = self.invoke(["preflight"], svc=svc)

        self.helper.assert_error_with_message(
            result, "failed to start prover inputs service"
        )
        assert svc.names == ["start"]

    def test_incomplete_s3_config(self):
        result = self.invoke(["--s3-bucket", "bucket", "generate"])

        self.helper.assert_error_with_message(
            result,
            "access-key, secret-key, region must be specified when using s3 storage",
        )
        assert "stop" not in self.svc.names

    def test_complete_s3_config_from_env(self):
        env = {
            "ZK_PIG_S3_BUCKET": "bucket",
            "ZK_PIG_S3_ACCESS_KEY": "ak",
            "ZK_PIG_S3_SECRET_KEY": "sk",
            "ZK_PIG_S3_REGION": "eu-west-1",
        }
        result = self.invoke(["execute", "-b", "1"], env=env)

        self.helper.assert_success(result)
        assert self.svc.names == ["start", "execute", "stop"]

    def test_run_failure_still_stops_service(self):
        svc = RecordingService(fail_on={"preflight"})
        result = self.invoke(["preflight", "-b", "1"], svc=svc)

        self.helper.assert_error_with_message(result, "preflight failed for block 1")
        assert svc.names == ["start", "preflight", "stop"]

    def test_json_logs(self):
        try:
            result = self.invoke(
                [
                    "--log-format",
                    "json",
                    "--log-level",
                    "debug",
                    "preflight",
                    "-b",
                    "2",
                ]
            )
        finally:
            configure_logging(LogLevel.INFO, LogFormat.TEXT)

        self.helper.assert_success(result)
        lines = [line for line in result.output.splitlines() if line.startswith("{")]
        records = [json.loads(line)["record"] for line in lines]
        messages = [record["message"] for record in records]
        assert "Prover inputs service started" in messages
        started = records[messages.index("Prover inputs service started")]
        assert started["extra"]["logger"] == "zk_pig"
        assert started["level"]["name"] == "DEBUG"
        assert "Running preflight for block 2" in messages

    def test_stop_failure_fails_command(self):
        svc = RecordingService(fail_on={"stop"})
        result = self.invoke(["generate", "-b", "1"], svc=svc)

        self.helper.assert_error_with_message(
            result, "failed to stop prover inputs service"
        )


@pytest.mark.integration
class TestConfigCommand(TestZkPigCLIBase):
    def test_prints_resolved_config(self):
        with patch("zk_pig.core.new_service") as mock_new_service:
            result = self.runner.invoke(app, ["--chain-id", "1", "config"])

        self.helper.assert_success(result)
        mock_new_service.assert_not_called()
        dumped = json.loads(result.stdout)
        expected = resolve_config(GlobalConfig(chain_id=1))
        assert dumped == json.loads(expected.model_dump_json())

    def test_flag_overrides_environment(self):
        result = self.runner.invoke(
            app, ["--chain-id", "7", "config"], env={"ZK_PIG_CHAIN_ID": "5"}
        )
        self.helper.assert_success(result)
        assert json.loads(result.stdout)["chain"]["id"] == 7

        result = self.runner.invoke(app, ["config"], env={"ZK_PIG_CHAIN_ID": "5"})
        self.helper.assert_success(result)
        assert json.loads(result.stdout)["chain"]["id"] == 5

    def test_env_file(self, tmp_path):
        env_file = tmp_path / "zk-pig.env"
        env_file.write_text("ZK_PIG_S3_BUCKET=from-env-file\n")

        result = self.runner.invoke(
            app,
            ["--env-file", str(env_file), "config"],
            env={"ZK_PIG_S3_BUCKET": None},
        )

        self.helper.assert_success(result)
        dumped = json.loads(result.stdout)
        assert dumped["prover_input_store"]["s3"]["bucket"] == "from-env-file"

    def test_env_directory_in_working_dir_is_ignored(self, tmp_path, monkeypatch):
        (tmp_path / ".env").mkdir()
        monkeypatch.chdir(tmp_path)

        result = self.runner.invoke(app, ["config"])

        self.helper.assert_success(result)
        assert json.loads(result.stdout)["data_dir"] == "data"

    def test_env_file_in_working_dir_is_loaded(self, tmp_path, monkeypatch):
        (tmp_path / ".env").write_text("ZK_PIG_S3_REGION=eu-west-3\n")
        monkeypatch.chdir(tmp_path)

        result = self.runner.invoke(app, ["config"], env={"ZK_PIG_S3_REGION": None})

        self.helper.assert_success(result)
        dumped = json.loads(result.stdout)
        assert dumped["prover_input_store"]["s3"]["aws_provider"]["region"] == (
            "eu-west-3"
        )

    def test_invalid_config(self):
        result = self.runner.invoke(app, ["--service-backend", "nope", "config"])
        self.helper.assert_error_with_message(result, "invalid configuration")

    def test_invalid_log_level_is_a_usage_error(self):
        result = self.runner.invoke(app, ["--log-level", "loud", "config"])
        assert result.exit_code == 2


@pytest.mark.unit
class TestCancelOnSignals:
    def test_sigterm_sets_event(self):
        with cancel_on_signals() as cancel:
            assert not cancel.is_set()
            os.kill(os.getpid(), signal.SIGTERM)
            assert cancel.wait(timeout=1)

    def test_sigint_sets_event_and_interrupts(self):
        with pytest.raises(KeyboardInterrupt):
            with cancel_on_signals() as cancel:
                os.kill(os.getpid(), signal.SIGINT)
                cancel.wait(timeout=1)
        assert cancel.is_set()

    def test_handlers_are_restored(self):
        previous = signal.getsignal(signal.SIGTERM)
        with cancel_on_signals():
            assert signal.getsignal(signal.SIGTERM) is not previous
        assert signal.getsignal(signal.SIGTERM) == previous
