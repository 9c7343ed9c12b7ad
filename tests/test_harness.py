"""Tests for prpkit.docker.harness."""

from unittest.mock import MagicMock, patch

import pytest

from prpkit.docker.harness import DockerTestHarness, _ask
from prpkit.docker.monitor import FAILED, PASSED, ServiceResult
from prpkit.lib.config import load_config
from prpkit.lib.errors import ErrorType, HarnessError


def _completed(returncode=0, stdout="", stderr=""):
    return MagicMock(returncode=returncode, stdout=stdout, stderr=stderr)


@pytest.fixture
def config(tmp_path):
    return load_config(tmp_path, environ={"BUILD_RETRIES": "2", "BUILD_RETRY_DELAY": "0"})


@pytest.fixture
def harness(config):
    with patch("prpkit.docker.compose.shutil.which", return_value=None):
        h = DockerTestHarness(config)
    h.compose = MagicMock()
    return h


class TestPrerequisites:
    """Checks run before any docker command."""

    @patch("prpkit.docker.harness.subprocess.run")
    @patch("prpkit.lib.errors.shutil.which", return_value=None)
    def test_docker_missing(self, mock_which, mock_run, harness):
        with pytest.raises(HarnessError) as exc:
            harness.check_prerequisites()
        assert exc.value.error_type == ErrorType.DOCKER_NOT_FOUND
        mock_run.assert_not_called()

    @patch("prpkit.docker.harness.subprocess.run", return_value=_completed(1))
    @patch("prpkit.lib.errors.shutil.which", return_value="/usr/bin/docker")
    def test_daemon_down(self, mock_which, mock_run, harness):
        with pytest.raises(HarnessError) as exc:
            harness.check_prerequisites()
        assert exc.value.error_type == ErrorType.DOCKER_NOT_RUNNING

    @patch("prpkit.docker.harness.compose_available", return_value=False)
    @patch("prpkit.docker.harness.subprocess.run", return_value=_completed(0))
    @patch("prpkit.lib.errors.shutil.which", return_value="/usr/bin/docker")
    def test_compose_missing(self, mock_which, mock_run, mock_compose, harness):
        with pytest.raises(HarnessError) as exc:
            harness.check_prerequisites()
        assert exc.value.error_type == ErrorType.COMPOSE_NOT_FOUND

    @patch("prpkit.docker.harness.errors.check_disk_space")
    @patch("prpkit.docker.harness.compose_available", return_value=True)
    @patch("prpkit.docker.harness.subprocess.run", return_value=_completed(0))
    @patch("prpkit.lib.errors.shutil.which", return_value="/usr/bin/docker")
    def test_low_disk_only_warns(self, mock_which, mock_run, mock_compose, mock_disk, harness):
        mock_disk.side_effect = HarnessError(ErrorType.DISK_SPACE_LOW, "Insufficient disk space", context="low")
        harness.check_prerequisites()


class TestBuild:
    """Building the test image with retries."""

    @patch("prpkit.docker.harness.subprocess.run", return_value=_completed(0))
    def test_success(self, mock_run, harness, config):
        harness.build(no_cache=True)
        argv = mock_run.call_args[0][0]
        assert argv == [
            "docker", "build", "--no-cache",
            "-f", str(config.dockerfile), "-t", "actions-test", ".",
        ]
        assert mock_run.call_args.kwargs["env"]["DOCKER_BUILDKIT"] == "1"

    @patch("prpkit.docker.harness.subprocess.run")
    def test_retries_then_fails_with_log_tail(self, mock_run, harness, config):
        def failing(cmd, **kwargs):
            kwargs["stdout"].write("step 1\nERROR: no such file\n")
            return _completed(1)

        mock_run.side_effect = failing
        with pytest.raises(HarnessError) as exc:
            harness.build()
        assert mock_run.call_count == 2
        assert exc.value.error_type == ErrorType.BUILD_FAILED
        assert str(config.log_file) in exc.value.message
        assert "ERROR: no such file" in exc.value.context

    @patch("prpkit.docker.harness.subprocess.run")
    def test_retry_recovers(self, mock_run, harness):
        mock_run.side_effect = [_completed(1), _completed(0)]
        harness.build()
        assert mock_run.call_count == 2


class TestRunning:
    """Running services and combining reports."""

    def test_run_tests(self, harness):
        harness.compose.up.return_value = 0
        assert harness.run_tests("unit-tests") == 0
        harness.compose.up.assert_called_once_with(["unit-tests"], detach=False, abort_on_exit=True)
        harness.compose.up.return_value = 2
        assert harness.run_tests("unit-tests") == 1

    def test_parallel_failure_shows_logs(self, harness, capsys):
        monitor = MagicMock()
        monitor.run.return_value = [
            ServiceResult("unit-tests", PASSED, 0),
            ServiceResult("security-scan", FAILED, 3),
        ]
        assert harness.run_parallel(monitor) == 1
        harness.compose.logs.assert_called_once_with("security-scan", tail=50)
        out = capsys.readouterr().out
        assert "❌ security-scan: FAILED (exit code: 3)" in out
        assert "✅ unit-tests: PASSED" in out

    def test_parallel_success_reports(self, harness, config):
        config.report_dir.mkdir(parents=True)
        (config.report_dir / "unit-tests-results.tap").write_text("1..1\nok 1 a\n")
        (config.report_dir / "security-scan-results.tap").write_text("1..1\nnot ok 1 b\n")
        monitor = MagicMock()
        monitor.run.return_value = [ServiceResult("unit-tests", PASSED, 0)]

        assert harness.run_parallel(monitor) == 0

        combined = (config.report_dir / "combined-results.tap").read_text()
        assert combined == "1..1\nnot ok 1 b\n1..1\nok 1 a\n"
        assert (config.report_dir / "test-results.md").exists()
        harness.compose.up.assert_called_once_with(["test-reports"])

    def test_report_without_tap_files(self, harness):
        assert harness.generate_combined_report() is None
        harness.compose.up.assert_called_once_with(["test-reports"])


class TestClean:
    """Removing test containers and images."""

    @patch("prpkit.docker.harness._docker")
    def test_removes_image_and_dangling(self, mock_docker, harness):
        def fake(*args, **kwargs):
            if args[:2] == ("images", "-q"):
                return _completed(0, stdout="aaa\nbbb\n")
            return _completed(0)

        mock_docker.side_effect = fake
        confirm = MagicMock()
        harness.clean(confirm=confirm)

        calls = [c.args for c in mock_docker.call_args_list]
        assert ("rmi", "actions-test") in calls
        assert ("rmi", "aaa", "bbb") in calls
        assert ("images", "-q", "-f", "dangling=true", "--filter", "label=project=actions-lib") in calls
        confirm.assert_not_called()
        assert harness.compose.down.call_count == 2

    @patch("prpkit.docker.harness._docker", return_value=_completed(1))
    def test_full_cleanup_declined(self, mock_docker, harness):
        harness.config.docker_full_cleanup = True
        harness.clean(confirm=lambda prompt: False)
        assert all(c.args[0] != "system" for c in mock_docker.call_args_list)

    @patch("prpkit.docker.harness._docker", return_value=_completed(0))
    def test_full_cleanup_confirmed(self, mock_docker, harness):
        harness.config.docker_full_cleanup = True
        harness.clean(confirm=lambda prompt: True)
        assert ("system", "prune", "-f") in [c.args for c in mock_docker.call_args_list]

    @patch("builtins.input", side_effect=EOFError)
    @patch("prpkit.docker.harness._docker", return_value=_completed(0))
    def test_full_cleanup_without_stdin_is_declined(self, mock_docker, mock_input, harness):
        harness.config.docker_full_cleanup = True
        harness.clean()
        mock_input.assert_called_once()
        assert all(c.args[0] != "system" for c in mock_docker.call_args_list)

    @patch("builtins.input", return_value="Yes")
    def test_ask_accepts_yes(self, mock_input):
        assert _ask("Continue? ")


class TestValidate:
    """Compose file and Dockerfile validation."""

    def test_missing_compose_file(self, harness):
        harness.check_prerequisites = MagicMock()
        with pytest.raises(HarnessError) as exc:
            harness.validate()
        assert exc.value.error_type == ErrorType.INVALID_CONFIG
        assert "not found" in exc.value.message

    def test_invalid_yaml(self, harness, config):
        harness.check_prerequisites = MagicMock()
        config.compose_file.write_text("services: [unclosed\n")
        with pytest.raises(HarnessError) as exc:
            harness.validate()
        assert "not valid YAML" in exc.value.message

    def test_compose_config_error(self, harness, config):
        harness.check_prerequisites = MagicMock()
        config.compose_file.write_text("services: {}\n")
        harness.compose.config.return_value = (False, "bad service")
        with pytest.raises(HarnessError) as exc:
            harness.validate()
        assert exc.value.context == "bad service"

    def test_missing_dockerfile(self, harness, config):
        harness.check_prerequisites = MagicMock()
        config.compose_file.write_text("services: {}\n")
        harness.compose.config.return_value = (True, "")
        with pytest.raises(HarnessError) as exc:
            harness.validate()
        assert exc.value.message == "Dockerfile.test not found"

    def test_valid(self, harness, config):
        harness.check_prerequisites = MagicMock()
        config.compose_file.write_text("services: {}\n")
        config.dockerfile.write_text("FROM ubuntu:22.04\n")
        harness.compose.config.return_value = (True, "")
        harness.validate()
