"""Tests for the command line interface."""
from unittest.mock import AsyncMock, patch

from click.testing import CliRunner

from chainfork import cli as cli_module
from chainfork.errors import MissingStorageValueError


def _invoke(args, run_fork=None):
    run_fork = run_fork or AsyncMock()
    with patch.object(cli_module, "run_fork", run_fork), \
            patch.object(cli_module, "configure_logging"):
        result = CliRunner().invoke(cli_module.cli, args)
    return result, run_fork


def test_options_reach_settings():
    result, run_fork = _invoke([
        "--bin", "./node", "--orig", "main", "--base", "local",
        "--storage", "none", "--pallets", "Balances", "--pallets", "Assets",
        "--exclude", "System", "--name", "Rehearsal", "--id", "rehearsal",
        "--max-concurrency", "16", "--no-progress",
    ])

    assert result.exit_code == 0, result.output
    assert "Done!" in result.output
    settings = run_fork.call_args.args[0]
    assert str(settings.original_identity) == "main"
    assert str(settings.base_identity) == "local"
    assert settings.storage_option.disabled
    assert settings.pallets == ["Balances", "Assets"]
    assert settings.excluded_pallets == ["System"]
    assert settings.fork_name == "Rehearsal"
    assert settings.fork_id == "rehearsal"
    assert settings.max_concurrent_requests == 16
    assert run_fork.call_args.kwargs["progress"].enabled is False


def test_defaults_leave_pallets_unset():
    result, run_fork = _invoke(["--bin", "./node", "--orig", "main"])

    assert result.exit_code == 0, result.output
    settings = run_fork.call_args.args[0]
    assert settings.pallets is None
    assert settings.base_identity.is_dev


def test_fork_error_exits_non_zero():
    failing = AsyncMock(side_effect=MissingStorageValueError("0x01", "0x" + "00" * 32))
    result, _ = _invoke(["--bin", "./node", "--orig", "main"], run_fork=failing)

    assert result.exit_code == 1
    assert "no value for enumerated key 0x01" in result.output
    assert "Done!" not in result.output


def test_invalid_configuration_exits_non_zero():
    result, run_fork = _invoke(["--bin", "./node", "--orig", "main", "--rpc", "http://node"])

    assert result.exit_code == 2
    run_fork.assert_not_called()
