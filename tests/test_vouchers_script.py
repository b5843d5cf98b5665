"""Tests for the voucher CLI script (scripts/vouchers.py).

Covers every command, configuration errors, controller failures and the
exit code returned when a change is applied but the list is stale.
"""

from unittest.mock import patch

import pytest

from fakes import MULTI_USE_KEY, TEST_VOUCHER_TYPES, FakeControllerClient
from scripts.vouchers import main


@pytest.fixture()
def cli_client(sample_vouchers):
    fake = FakeControllerClient(sample_vouchers)
    with patch("scripts.vouchers.build_controller_client", return_value=fake):
        yield fake


class TestVoucherScript:
    """Tests for the main() entry point of the voucher script."""

    def test_types(self, capsys):
        result = main(["--voucher-types", TEST_VOUCHER_TYPES, "types"])
        assert result == 0
        out = capsys.readouterr().out
        assert "[0] 480,0,,,\t8 hours, multi-use, no limits" in out
        assert "[1] 1440,1,100,50,1024" in out

    def test_invalid_configuration_returns_1(self, cli_client):
        result = main(["--voucher-types", "bad,0,,,;", "list"])
        assert result == 1
        assert cli_client.list_calls == 0

    def test_list(self, cli_client, capsys):
        result = main(["--voucher-types", TEST_VOUCHER_TYPES, "list"])
        assert result == 0
        out = capsys.readouterr().out
        assert "v1\t11111-22222\t8 hours\tmulti-use" in out
        assert "v2\t33333-44444\t1 day\tsingle-use" in out
        assert cli_client.closed is True

    def test_list_controller_failure(self, cli_client):
        cli_client.list_error = "Controller unreachable"
        assert main(["--voucher-types", TEST_VOUCHER_TYPES, "list"]) == 1
        assert cli_client.closed is True

    def test_issue(self, cli_client, capsys):
        result = main(
            ["--voucher-types", TEST_VOUCHER_TYPES, "issue", MULTI_USE_KEY, "--amount", "2"]
        )
        assert result == 0
        assert capsys.readouterr().out.split() == ["0000000001", "0000000002"]
        assert cli_client.create_calls[0][1] == 2

    def test_issue_unknown_type(self, cli_client):
        result = main(["--voucher-types", TEST_VOUCHER_TYPES, "issue", "0"])
        assert result == 1
        assert cli_client.create_calls == []

    def test_issue_refresh_failure_returns_2(self, cli_client, capsys):
        cli_client.list_error = "Controller unreachable"
        result = main(["--voucher-types", TEST_VOUCHER_TYPES, "issue", MULTI_USE_KEY])
        assert result == 2
        assert "0000000001" in capsys.readouterr().out

    def test_revoke(self, cli_client):
        assert main(["--voucher-types", TEST_VOUCHER_TYPES, "revoke", "v1"]) == 0
        assert cli_client.remove_calls == ["v1"]

    def test_revoke_failure(self, cli_client):
        cli_client.remove_error = "api.err.InvalidObject"
        assert main(["--voucher-types", TEST_VOUCHER_TYPES, "revoke", "v1"]) == 1

    def test_default_configuration_from_settings(self, cli_client, capsys):
        """Without --voucher-types the module-level settings are used."""
        assert main(["types"]) == 0
        assert "[0]" in capsys.readouterr().out

    def test_command_required(self):
        with pytest.raises(SystemExit):
            main([])
