"""Tests for the category sync command line entry point."""

import importlib.util
from pathlib import Path

import pytest

SCRIPT = Path(__file__).parent.parent / "scripts" / "run_category_sync.py"

spec = importlib.util.spec_from_file_location("run_category_sync", SCRIPT)
cli = importlib.util.module_from_spec(spec)
spec.loader.exec_module(cli)


class TestArguments:
    """Tests for job selection."""

    def test_all_expands_in_declared_order(self):
        assert cli.expand_jobs(["all"]) == [
            "trending",
            "popular",
            "top-rated",
            "dramas",
            "upcoming",
        ]

    def test_duplicates_are_dropped(self):
        assert cli.expand_jobs(["dramas", "all", "cleanup", "dramas"]) == [
            "dramas",
            "trending",
            "popular",
            "top-rated",
            "upcoming",
            "cleanup",
        ]

    def test_parse_args(self):
        args = cli.parse_args(["--init-db", "trending", "cleanup"])

        assert args.init_db is True
        assert args.jobs == ["trending", "cleanup"]

    def test_unknown_job_is_rejected(self):
        with pytest.raises(SystemExit):
            cli.parse_args(["weekly"])
