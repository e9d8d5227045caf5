"""Tests for the output formatting system.

Covers:
- OutputFormat resolution (auto -> rich/plain based on TTY)
- NO_COLOR / TERM=dumb color disabling
- stdout vs stderr discipline
- Quiet and verbose modes
- format_response and print_table in all three modes
- Section rules
- Global instance management and convenience functions
"""

from __future__ import annotations

import json

import pytest

from vidcache.output import (
    OutputFormat,
    OutputManager,
    _should_disable_color,
    get_output,
    reset_output,
    set_output,
)
from vidcache import output as output_module


# ------------------------------------------------------------------ #
# Fixtures
# ------------------------------------------------------------------ #


@pytest.fixture(autouse=True)
def _reset_global_output():
    """Ensure the global output instance is reset between tests."""
    reset_output()
    yield
    reset_output()


@pytest.fixture()
def non_tty(monkeypatch):
    """Patch stdout.isatty() to return False."""
    monkeypatch.setattr("vidcache.output._is_tty", lambda: False)


@pytest.fixture()
def tty(monkeypatch):
    """Patch stdout.isatty() to return True."""
    monkeypatch.setattr("vidcache.output._is_tty", lambda: True)


# ------------------------------------------------------------------ #
# OutputFormat resolution
# ------------------------------------------------------------------ #


class TestOutputFormatResolution:
    """Test that AUTO format resolves correctly based on environment."""

    def test_auto_resolves_to_plain_when_not_tty(self, non_tty):
        mgr = OutputManager(format=OutputFormat.AUTO)
        assert mgr.format == OutputFormat.PLAIN

    def test_auto_resolves_to_rich_when_tty(self, tty, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.delenv("TERM", raising=False)
        mgr = OutputManager(format=OutputFormat.AUTO)
        assert mgr.format == OutputFormat.RICH

    def test_auto_resolves_to_plain_when_tty_but_no_color(self, tty, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        mgr = OutputManager(format=OutputFormat.AUTO, no_color=True)
        assert mgr.format == OutputFormat.PLAIN

    def test_explicit_json_stays_json(self, tty):
        mgr = OutputManager(format=OutputFormat.JSON)
        assert mgr.format == OutputFormat.JSON


class TestColorDisabling:
    """Test that NO_COLOR and TERM=dumb are respected."""

    def test_no_color_env_any_value(self, monkeypatch):
        monkeypatch.setenv("NO_COLOR", "")
        assert _should_disable_color() is True

    def test_term_dumb_disables_color(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "dumb")
        assert _should_disable_color() is True

    def test_normal_term_keeps_color(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "xterm-256color")
        assert _should_disable_color() is False


# ------------------------------------------------------------------ #
# stdout vs stderr discipline
# ------------------------------------------------------------------ #


class TestStdoutStderrDiscipline:
    """Test that data goes to stdout and diagnostics go to stderr."""

    @pytest.mark.parametrize("method", ["info", "success", "warning", "error", "suggest"])
    def test_diagnostics_go_to_stderr(self, capfd, non_tty, method):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        getattr(mgr, method)("Fetching playlist: Lessons...")
        captured = capfd.readouterr()
        assert captured.out == ""
        assert "Fetching playlist: Lessons..." in captured.err

    def test_print_data_goes_to_stdout(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        mgr.print_data("hello world")
        captured = capfd.readouterr()
        assert "hello world" in captured.out
        assert captured.err == ""

    def test_no_diagnostics_leak_to_stdout_in_json(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.JSON, no_color=True)
        mgr.info("Validating cache...")
        mgr.format_response({"isValid": True})
        mgr.success("done")
        captured = capfd.readouterr()
        assert json.loads(captured.out) == {"isValid": True}
        assert "Validating cache..." in captured.err

    def test_prefixes_without_color(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        mgr.warning("slow")
        mgr.error("broken")
        captured = capfd.readouterr()
        assert "Warning: slow" in captured.err
        assert "Error: broken" in captured.err


# ------------------------------------------------------------------ #
# Quiet / verbose
# ------------------------------------------------------------------ #


class TestQuietMode:
    """Test that --quiet suppresses info/success/suggest/rule but not warning/error."""

    @pytest.mark.parametrize("method", ["info", "success", "suggest", "rule"])
    def test_quiet_suppresses(self, capfd, non_tty, method):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True, quiet=True)
        getattr(mgr, method)("should not appear")
        assert capfd.readouterr().err == ""

    def test_quiet_keeps_warning_and_error(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True, quiet=True)
        mgr.warning("important warning")
        mgr.error("critical error")
        captured = capfd.readouterr()
        assert "important warning" in captured.err
        assert "critical error" in captured.err

    def test_quiet_property(self):
        assert OutputManager(quiet=True).is_quiet is True


class TestVerboseMode:
    """Test that --verbose enables debug output."""

    def test_debug_hidden_by_default(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        mgr.debug("should not appear")
        assert capfd.readouterr().err == ""

    def test_debug_shown_with_verbose(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True, verbose=True)
        mgr.debug("trace info")
        assert "[debug] trace info" in capfd.readouterr().err

    def test_verbose_property(self):
        assert OutputManager(verbose=True).is_verbose is True
        assert OutputManager().is_verbose is False


# ------------------------------------------------------------------ #
# Data rendering
# ------------------------------------------------------------------ #


class TestFormatResponse:
    def test_json_mode(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.JSON, no_color=True)
        data = {"totalPlaylists": 2, "playlists": {"PL1": {"videoCount": 3}}}
        mgr.format_response(data)
        assert json.loads(capfd.readouterr().out) == data

    def test_plain_mode_key_value(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        mgr.format_response({"ready": True, "missing": ["PL1"]})
        lines = capfd.readouterr().out.strip().split("\n")
        assert lines == ["ready\tTrue", 'missing\t["PL1"]']

    def test_plain_mode_list(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        mgr.format_response(["alpha", {"id": 1, "name": "b"}])
        lines = capfd.readouterr().out.strip().split("\n")
        assert lines == ["alpha", "1\tb"]

    def test_rich_mode(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.RICH, no_color=True)
        mgr.format_response({"key": "value"})
        out = capfd.readouterr().out
        assert "key" in out
        assert "value" in out


class TestPrintTable:
    """Test print_table in all three output modes."""

    def test_table_json_mode(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.JSON, no_color=True)
        mgr.print_table(["Field", "Value"], [["Status", "Ready"]])
        assert json.loads(capfd.readouterr().out) == [{"Field": "Status", "Value": "Ready"}]

    def test_table_plain_mode(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        mgr.print_table(["Field", "Value"], [["Status", "Ready"]], title="ignored")
        lines = capfd.readouterr().out.strip().split("\n")
        assert lines == ["Field\tValue", "Status\tReady"]

    def test_table_rich_mode(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.RICH, no_color=True)
        mgr.print_table(["Field", "Value"], [["Total videos", "42"]], title="YouTube Cache")
        out = capfd.readouterr().out
        assert "YouTube Cache" in out
        assert "Total videos" in out


class TestRule:
    def test_rule_plain(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        mgr.rule("Cache Warmup Complete")
        captured = capfd.readouterr()
        assert captured.out == ""
        assert "Cache Warmup Complete\n" + "=" * 50 in captured.err

    def test_rule_without_title(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        mgr.rule()
        assert capfd.readouterr().err.strip() == "=" * 50


# ------------------------------------------------------------------ #
# Global instance management
# ------------------------------------------------------------------ #


class TestGlobalInstance:
    def test_get_output_creates_default(self):
        assert isinstance(get_output(), OutputManager)

    def test_set_output_overrides(self):
        custom = OutputManager(format=OutputFormat.JSON, no_color=True)
        set_output(custom)
        assert get_output() is custom

    def test_set_then_reset_then_get(self):
        first = OutputManager(format=OutputFormat.JSON, no_color=True)
        set_output(first)
        reset_output()
        assert get_output() is not first


class TestConvenienceFunctions:
    """Test module-level convenience functions delegate to global instance."""

    def test_format_response_convenience(self, capfd, non_tty):
        set_output(OutputManager(format=OutputFormat.JSON, no_color=True))
        output_module.format_response({"a": 1})
        assert json.loads(capfd.readouterr().out) == {"a": 1}

    def test_diagnostic_convenience(self, capfd, non_tty):
        set_output(OutputManager(format=OutputFormat.PLAIN, no_color=True, verbose=True))
        output_module.info("hello")
        output_module.warning("watch out")
        output_module.debug("trace")
        output_module.rule("Done")
        err = capfd.readouterr().err
        assert "hello" in err
        assert "watch out" in err
        assert "trace" in err
        assert "Done" in err

    def test_print_table_convenience(self, capfd, non_tty):
        set_output(OutputManager(format=OutputFormat.JSON, no_color=True))
        output_module.print_table(["x"], [["1"]])
        assert json.loads(capfd.readouterr().out) == [{"x": "1"}]
