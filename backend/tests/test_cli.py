"""Tests for the scrubber command-line front end."""

from __future__ import annotations

import io

import pytest

from cli import build_parser, run_cli
from samples import AWS_ACCESS_KEY, INJECTION_TEXT


class _TTY(io.StringIO):
    def isatty(self) -> bool:
        return True


@pytest.fixture
def leaky_file(tmp_path, leaky_config_text: str):
    path = tmp_path / "app.env"
    path.write_text(leaky_config_text)
    return path


class TestParser:

    def test_defaults(self):
        args = build_parser().parse_args([])
        assert args.mode == "sanitize"
        assert args.file is None
        assert args.detect_injections is True

    def test_block_flag_sets_mode(self):
        assert build_parser().parse_args(["-b"]).mode == "block"

    def test_thresholds(self):
        args = build_parser().parse_args(["-s", "1", "-i", "4", "--high-severity", "2"])
        assert (args.secrets, args.injections, args.high_severity) == (1, 4, 2)


class TestSanitizeMode:

    def test_file_is_redacted(self, leaky_file, capsys):
        assert run_cli([str(leaky_file)]) == 0
        out, err = capsys.readouterr()
        assert "AWS_KEY=[REDACTED:aws_access_key]" in out
        assert AWS_ACCESS_KEY not in out
        assert "2 secret(s) redacted" in err

    def test_stdin(self, monkeypatch, capsys):
        monkeypatch.setattr("sys.stdin", io.StringIO(f"AWS_KEY={AWS_ACCESS_KEY}"))
        assert run_cli([]) == 0
        out, _ = capsys.readouterr()
        assert out == "AWS_KEY=[REDACTED:aws_access_key]"

    def test_clean_input_reported(self, monkeypatch, capsys):
        monkeypatch.setattr("sys.stdin", io.StringIO("just words"))
        assert run_cli([]) == 0
        out, err = capsys.readouterr()
        assert out == "just words"
        assert "No threats detected" in err

    def test_quiet_suppresses_stats(self, leaky_file, capsys):
        assert run_cli(["-q", str(leaky_file)]) == 0
        _, err = capsys.readouterr()
        assert err == ""

    def test_verbose_lists_pattern_counts(self, leaky_file, capsys):
        assert run_cli(["-v", str(leaky_file)]) == 0
        _, err = capsys.readouterr()
        assert "aws_access_key (critical): 1x" in err
        assert AWS_ACCESS_KEY not in err

    def test_no_injections_flag(self, monkeypatch, capsys):
        monkeypatch.setattr("sys.stdin", io.StringIO(INJECTION_TEXT))
        assert run_cli(["--no-injections"]) == 0
        out, _ = capsys.readouterr()
        assert out == INJECTION_TEXT


class TestBlockMode:

    def test_blocked_exits_one_without_output(self, leaky_file, capsys):
        assert run_cli(["--block", str(leaky_file)]) == 1
        out, err = capsys.readouterr()
        assert out == ""
        assert "BLOCKED: Content blocked: 2 secrets" in err

    def test_below_threshold_passes(self, monkeypatch, capsys):
        monkeypatch.setattr("sys.stdin", io.StringIO("harmless text"))
        assert run_cli(["-m", "block"]) == 0
        out, _ = capsys.readouterr()
        assert out == "harmless text"


class TestErrors:

    def test_missing_file(self, tmp_path, capsys):
        assert run_cli([str(tmp_path / "missing.txt")]) == 1
        _, err = capsys.readouterr()
        assert "error: cannot read" in err

    def test_tty_stdin_rejected(self, monkeypatch, capsys):
        monkeypatch.setattr("sys.stdin", _TTY())
        assert run_cli([]) == 1
        _, err = capsys.readouterr()
        assert "no input provided" in err

    @pytest.mark.parametrize("argv", [["-s", "0"], ["-i", "abc"], ["-m", "warn"]])
    def test_usage_errors_exit_two(self, argv):
        assert run_cli(argv) == 2

    def test_help_exits_zero(self, capsys):
        assert run_cli(["--help"]) == 0
        out, _ = capsys.readouterr()
        assert "scrubber" in out
