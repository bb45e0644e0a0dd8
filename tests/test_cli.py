"""Tests for the command-line interface."""

import asyncio
import logging
from pathlib import Path

import pytest

from fsrelay import cli
from fsrelay.config import DEFAULT_IGNORE_PATTERNS
from fsrelay.models import RawKind, SemanticKind
from fsrelay.pipeline import Context


class TestBuildParser:
    """Tests for argument parsing."""

    def test_defaults(self):
        args = cli.build_parser().parse_args(["src"])

        assert args.paths == ["src"]
        assert args.base is None
        assert args.debounce == 50
        assert args.recursive is True
        assert args.ignore is None
        assert args.polling is False
        assert args.verbose is False

    def test_all_options(self, tmp_path):
        args = cli.build_parser().parse_args([
            "a", "b",
            "--base", str(tmp_path),
            "--debounce", "0",
            "--no-recursive",
            "--ignore", "*.log",
            "--ignore", "build/*",
            "--polling",
            "-v",
        ])

        assert args.paths == ["a", "b"]
        assert args.base == tmp_path
        assert args.debounce == 0
        assert args.recursive is False
        assert args.ignore == ["*.log", "build/*"]
        assert args.polling is True
        assert args.verbose is True


class TestBuildWatcher:
    """Tests for building a watcher from arguments."""

    def test_options_from_args(self, tmp_path):
        args = cli.build_parser().parse_args(["a", "--base", str(tmp_path), "--debounce", "0", "--ignore", "*.log"])
        watcher = cli.build_watcher(args)

        assert watcher.paths == [str(tmp_path.resolve() / "a")]
        assert watcher.options.debounce_window is None
        assert watcher.options.should_ignore("/x/app.log") is True
        assert watcher.options.should_ignore("/x/app.swp") is False
        assert watcher.pipeline.middleware == (cli.log_event,)

    def test_default_ignore_patterns(self, tmp_path):
        args = cli.build_parser().parse_args(["a", "--base", str(tmp_path)])
        watcher = cli.build_watcher(args)

        assert "*.swp" in DEFAULT_IGNORE_PATTERNS
        assert watcher.options.should_ignore("/x/file.swp") is True
        assert watcher.options.debounce_ms == 50

    def test_base_defaults_to_current_directory(self, tmp_path, monkeypatch):
        args = cli.build_parser().parse_args(["a"])
        monkeypatch.chdir(tmp_path)
        watcher = cli.build_watcher(args)

        assert watcher.options.base == tmp_path.resolve()
        assert watcher.paths == [str(tmp_path.resolve() / "a")]


class TestLogEvent:
    """Tests for the logging middleware."""

    @pytest.mark.asyncio
    async def test_logs_and_continues(self, caplog):
        called = []
        ctx = Context(
            path="/w/f.txt",
            event=SemanticKind.REMOVE,
            file=None,
            flag=None,
            raw_kind=RawKind.MODIFY,
            state={},
        )

        async def call_next():
            called.append(True)

        with caplog.at_level(logging.INFO, logger="fsrelay"):
            await cli.log_event(ctx, call_next)

        assert called == [True]
        assert "remove" in caplog.text
        assert "/w/f.txt" in caplog.text


class TestMain:
    """Tests for the main entry point."""

    def test_no_paths_exits_with_usage_error(self, tmp_path):
        assert cli.main(["--base", str(tmp_path)]) == 2

    def test_negative_debounce_rejected(self, tmp_path):
        assert cli.main(["a", "--base", str(tmp_path), "--debounce", "-5"]) == 2

    def test_missing_root_fails(self, tmp_path):
        assert cli.main(["missing", "--base", str(tmp_path)]) == 1
