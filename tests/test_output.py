"""Tests for the output formatting system.

Covers:
- OutputFormat resolution (auto -> rich/plain based on TTY)
- NO_COLOR / TERM=dumb color disabling
- stdout vs stderr discipline, quiet and verbose rules
- format_response and print_table in JSON and plain modes
- Log handler installation for the oauth2kit logger hierarchy
- mask_secret and global instance management
"""

from __future__ import annotations

import json
import logging

import pytest

from oauth2kit import output as output_module
from oauth2kit.output import (
    OutputFormat,
    OutputManager,
    _should_disable_color,
    get_output,
    mask_secret,
    reset_output,
    set_output,
)


# ------------------------------------------------------------------ #
# Fixtures
# ------------------------------------------------------------------ #


@pytest.fixture()
def non_tty(monkeypatch):
    monkeypatch.setattr("oauth2kit.output._is_tty", lambda: False)


@pytest.fixture()
def tty(monkeypatch):
    monkeypatch.setattr("oauth2kit.output._is_tty", lambda: True)


# ------------------------------------------------------------------ #
# OutputFormat resolution
# ------------------------------------------------------------------ #


class TestOutputFormatResolution:
    def test_auto_is_plain_when_piped(self, non_tty):
        assert OutputManager().format == OutputFormat.PLAIN

    def test_auto_is_rich_on_tty(self, tty, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.delenv("TERM", raising=False)
        assert OutputManager().format == OutputFormat.RICH

    def test_auto_is_plain_on_tty_without_color(self, tty):
        assert OutputManager(no_color=True).format == OutputFormat.PLAIN

    def test_explicit_format_is_kept(self, non_tty):
        assert OutputManager(format=OutputFormat.JSON).format == OutputFormat.JSON


class TestColorDisabling:
    def test_no_color_any_value(self, monkeypatch):
        monkeypatch.setenv("NO_COLOR", "")
        assert _should_disable_color() is True

    def test_term_dumb(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "dumb")
        assert _should_disable_color() is True

    def test_default_allows_color(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "xterm-256color")
        assert _should_disable_color() is False


# ------------------------------------------------------------------ #
# Stream discipline
# ------------------------------------------------------------------ #


class TestStreams:
    def test_data_goes_to_stdout(self, capsys):
        OutputManager(format=OutputFormat.PLAIN, no_color=True).print_data("tok")
        captured = capsys.readouterr()
        assert captured.out == "tok\n"
        assert captured.err == ""

    def test_diagnostics_go_to_stderr(self, capsys):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        mgr.info("hello")
        mgr.success("done")
        mgr.warning("careful")
        mgr.error("broken")
        mgr.suggest("try again")
        captured = capsys.readouterr()
        assert captured.out == ""
        assert captured.err.splitlines() == [
            "hello",
            "done",
            "Warning: careful",
            "Error: broken",
            "→ try again",
        ]

    def test_quiet_keeps_warnings_and_errors(self, capsys):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True, quiet=True)
        mgr.info("hello")
        mgr.success("done")
        mgr.suggest("try again")
        mgr.warning("careful")
        mgr.error("broken")
        assert capsys.readouterr().err.splitlines() == ["Warning: careful", "Error: broken"]

    def test_debug_only_when_verbose(self, capsys):
        OutputManager(format=OutputFormat.PLAIN, no_color=True).debug("hidden")
        OutputManager(format=OutputFormat.PLAIN, no_color=True, verbose=True).debug("shown")
        assert capsys.readouterr().err == "[debug] shown\n"


# ------------------------------------------------------------------ #
# Structured data
# ------------------------------------------------------------------ #


class TestFormatResponse:
    def test_json(self, capsys):
        OutputManager(format=OutputFormat.JSON).format_response({"access_token": "a", "scope": ["x"]})
        assert json.loads(capsys.readouterr().out) == {"access_token": "a", "scope": ["x"]}

    def test_plain_dict(self, capsys):
        OutputManager(format=OutputFormat.PLAIN, no_color=True).format_response(
            {"access_token": "a", "scope": ["read", "write"], "id_token": None}
        )
        assert capsys.readouterr().out.splitlines() == [
            "access_token\ta",
            "scope\tread write",
            "id_token\t",
        ]

    def test_plain_list_and_scalar(self, capsys):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        mgr.format_response(["a", "b"])
        mgr.format_response(42)
        assert capsys.readouterr().out.splitlines() == ["a", "b", "42"]


class TestPrintTable:
    def test_json(self, capsys):
        OutputManager(format=OutputFormat.JSON).print_table(["Profile", "Token"], [["a", "valid"]])
        assert json.loads(capsys.readouterr().out) == [{"Profile": "a", "Token": "valid"}]

    def test_plain(self, capsys):
        OutputManager(format=OutputFormat.PLAIN, no_color=True).print_table(
            ["Profile", "Token"], [["a", "valid"], ["b", "none"]]
        )
        assert capsys.readouterr().out.splitlines() == ["Profile\tToken", "a\tvalid", "b\tnone"]

    def test_rich(self, capsys):
        OutputManager(format=OutputFormat.RICH).print_table(["Profile"], [["alpha"]], title="Profiles")
        out = capsys.readouterr().out
        assert "Profiles" in out
        assert "alpha" in out


# ------------------------------------------------------------------ #
# Logging
# ------------------------------------------------------------------ #


class TestLogHandler:
    @staticmethod
    def _cli_handlers() -> list[logging.Handler]:
        return [h for h in logging.getLogger("oauth2kit").handlers if getattr(h, "_oauth2kit_cli", False)]

    def test_default_level_is_warning(self):
        OutputManager(format=OutputFormat.PLAIN, no_color=True).install_log_handler()
        assert logging.getLogger("oauth2kit").level == logging.WARNING
        assert len(self._cli_handlers()) == 1

    def test_verbose_and_quiet_levels(self):
        OutputManager(format=OutputFormat.PLAIN, no_color=True, verbose=True).install_log_handler()
        assert logging.getLogger("oauth2kit").level == logging.DEBUG
        OutputManager(format=OutputFormat.PLAIN, no_color=True, quiet=True).install_log_handler()
        assert logging.getLogger("oauth2kit").level == logging.ERROR

    def test_reinstall_replaces_handler(self):
        OutputManager(format=OutputFormat.PLAIN, no_color=True).install_log_handler()
        OutputManager(format=OutputFormat.PLAIN, no_color=True).install_log_handler()
        assert len(self._cli_handlers()) == 1

    def test_library_warnings_reach_stderr(self, capsys):
        OutputManager(format=OutputFormat.PLAIN, no_color=True).install_log_handler()
        logging.getLogger("oauth2kit.client.oauth2_client").warning("discovery skipped")
        assert "WARNING oauth2kit.client.oauth2_client: discovery skipped" in capsys.readouterr().err


# ------------------------------------------------------------------ #
# Helpers and global instance
# ------------------------------------------------------------------ #


class TestMaskSecret:
    @pytest.mark.parametrize(
        "value, expected",
        [(None, "-"), ("", "-"), ("short", "short"), ("abcdefghijklmnop", "abcdefgh...")],
    )
    def test_mask(self, value, expected):
        assert mask_secret(value) == expected


class TestGlobalInstance:
    def test_lazy_default(self):
        reset_output()
        assert get_output() is get_output()

    def test_set_and_module_helpers(self, capsys):
        set_output(OutputManager(format=OutputFormat.PLAIN, no_color=True))
        output_module.print_data("x")
        output_module.error("bad")
        captured = capsys.readouterr()
        assert captured.out == "x\n"
        assert captured.err == "Error: bad\n"
