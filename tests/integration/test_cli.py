"""Integration tests for the jumpjump command line.

These tests drive ``main`` end to end against a store file in a
temporary directory and check what reaches stdout and the exit status.
"""

import json
import logging
import sqlite3
from pathlib import Path

import pytest
from pydantic import ValidationError

from jumpjump.__main__ import main, open_store, parse_arguments
from jumpjump.config import JumpSettings


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch):
    """Keep real settings and .env files out of the tests."""
    for name in [
        "JUMPJUMP_DB_PATH",
        "JUMPJUMP_LOG_LEVEL",
        "JUMPJUMP_RAW_PATTERNS",
        "JUMPJUMP_PATTERN_CACHE_SIZE",
        "JUMPJUMP_BUSY_TIMEOUT",
    ]:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def db_file(tmp_path: Path) -> str:
    """Path to a store file for the test."""
    return str(tmp_path / "jump.db")


def run(capsys, *argv: str) -> list[str]:
    """Run the CLI and return the stdout lines."""
    capsys.readouterr()
    main(list(argv))
    return capsys.readouterr().out.splitlines()


class TestJumpSettings:
    """Tests for JumpSettings configuration."""

    def test_default_settings(self):
        """Test that default settings are applied correctly."""
        settings = JumpSettings()

        assert settings.db_path is None
        assert settings.log_level == "WARNING"
        assert settings.raw_patterns is False
        assert settings.pattern_cache_size == 128
        assert settings.busy_timeout == 5.0

    def test_env_override(self, monkeypatch, tmp_path: Path):
        """Test that environment variables override defaults."""
        monkeypatch.setenv("JUMPJUMP_DB_PATH", str(tmp_path / "other.db"))
        monkeypatch.setenv("JUMPJUMP_LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("JUMPJUMP_RAW_PATTERNS", "true")

        settings = JumpSettings()

        assert settings.get_db_path() == (tmp_path / "other.db").resolve()
        assert settings.log_level == "DEBUG"
        assert settings.raw_patterns is True

    def test_default_db_path_in_home(self, tmp_path: Path):
        """Test the store defaults to a dotfile in the home directory."""
        assert JumpSettings().get_db_path() == tmp_path / "home" / ".jumpjump"

    def test_cache_size_validation(self):
        """Test that the pattern cache size is validated."""
        with pytest.raises(ValidationError):
            JumpSettings(pattern_cache_size=0)

    def test_cli_overrides_env(self, monkeypatch, tmp_path: Path):
        """Test that CLI arguments win over environment variables."""
        monkeypatch.setenv("JUMPJUMP_DB_PATH", str(tmp_path / "env.db"))

        args = parse_arguments(["-f", str(tmp_path / "cli.db"), "get"])
        assert args.file == str(tmp_path / "cli.db")

        args = parse_arguments(["get"])
        assert args.file == str(tmp_path / "env.db")

    def test_file_option_normalized_like_env(self, monkeypatch, tmp_path: Path):
        """Test -f and JUMPJUMP_DB_PATH give the same absolute store path."""
        settings = JumpSettings()
        args = parse_arguments(["-f", "rel.db", "get"], settings)

        with open_store(args, settings) as store:
            cli_path = store.db_path

        monkeypatch.setenv("JUMPJUMP_DB_PATH", "rel.db")
        assert cli_path == JumpSettings().get_db_path()
        assert cli_path.is_absolute()
        assert cli_path == (tmp_path / "rel.db").resolve()

    def test_file_option_expands_home(self, tmp_path: Path):
        """Test -f expands ~ to the home directory."""
        settings = JumpSettings()
        args = parse_arguments(["-f", "~/jump.db", "get"], settings)

        with open_store(args, settings) as store:
            assert store.db_path == (tmp_path / "home" / "jump.db").resolve()


class TestAddAndGet:
    """Tests for the add and get commands."""

    def test_add_then_get_all(self, capsys, db_file: str, tmp_path: Path):
        """Test added locations are listed by rank."""
        foo = tmp_path / "foo"
        bar = tmp_path / "bar"
        run(capsys, "-f", db_file, "add", str(foo))
        run(capsys, "-f", db_file, "add", str(bar))
        run(capsys, "-f", db_file, "add", str(bar))

        assert run(capsys, "-f", db_file, "get") == [bar.as_posix(), foo.as_posix()]

    def test_add_canonicalizes(self, capsys, db_file: str, tmp_path: Path):
        """Test relative and dotted paths are stored canonicalized."""
        run(capsys, "-f", db_file, "add", str(tmp_path / "a" / ".." / "proj"))

        assert run(capsys, "-f", db_file, "get") == [(tmp_path / "proj").as_posix()]

    def test_get_best_match(self, capsys, db_file: str):
        """Test patterns print only the best match."""
        for location in ["/src/api", "/src/web", "/src/web", "/docs"]:
            run(capsys, "-f", db_file, "add", location)

        assert run(capsys, "-f", db_file, "get", "src") == ["/src/web"]
        assert run(capsys, "-f", db_file, "get", "S", "API") == ["/src/api"]

    def test_get_no_match_prints_nothing(self, capsys, db_file: str):
        """Test a miss prints nothing and exits normally."""
        run(capsys, "-f", db_file, "add", "/src/api")

        assert run(capsys, "-f", db_file, "get", "zzz") == []

    def test_get_empty_store(self, capsys, db_file: str):
        """Test an empty store prints nothing."""
        assert run(capsys, "-f", db_file, "get") == []

    def test_raw_patterns_flag(self, capsys, db_file: str):
        """Test --raw-patterns treats patterns as regular expressions."""
        run(capsys, "-f", db_file, "add", "/src/v102")

        assert run(capsys, "-f", db_file, "get", "1.2") == []
        assert run(capsys, "-f", db_file, "--raw-patterns", "get", "1.2") == ["/src/v102"]

    def test_no_raw_patterns_overrides_env(self, capsys, monkeypatch, db_file: str):
        """Test --no-raw-patterns switches off raw mode set in the environment."""
        monkeypatch.setenv("JUMPJUMP_RAW_PATTERNS", "true")
        run(capsys, "-f", db_file, "add", "/src/v102")

        assert run(capsys, "-f", db_file, "get", "1.2") == ["/src/v102"]
        assert run(capsys, "-f", db_file, "--no-raw-patterns", "get", "1.2") == []

    def test_get_empty_pattern_prints_one_line(self, capsys, db_file: str):
        """Test an empty pattern prints only the best location."""
        for location in ["/src/api", "/src/web", "/src/web"]:
            run(capsys, "-f", db_file, "add", location)

        assert run(capsys, "-f", db_file, "get", "") == ["/src/web"]

    def test_invalid_raw_pattern_exits(self, capsys, db_file: str, caplog):
        """Test an invalid raw pattern is reported with exit status 1."""
        with caplog.at_level(logging.ERROR):
            with pytest.raises(SystemExit) as exc_info:
                main(["-f", db_file, "--raw-patterns", "get", "foo("])

        assert exc_info.value.code == 1
        assert "Invalid pattern" in caplog.text

    def test_default_store_used(self, capsys, tmp_path: Path):
        """Test the home dotfile is used without --file."""
        run(capsys, "add", "/somewhere")

        assert (tmp_path / "home" / ".jumpjump").exists()
        assert run(capsys, "get") == ["/somewhere"]

    def test_db_path_from_env(self, capsys, monkeypatch, tmp_path: Path):
        """Test JUMPJUMP_DB_PATH selects the store."""
        monkeypatch.setenv("JUMPJUMP_DB_PATH", str(tmp_path / "env.db"))
        run(capsys, "add", "/somewhere")

        assert (tmp_path / "env.db").exists()


class TestShow:
    """Tests for the show command."""

    def test_show_lists_rank_and_time(self, capsys, db_file: str):
        """Test show prints rank, last access and location."""
        run(capsys, "-f", db_file, "add", "/foo")
        run(capsys, "-f", db_file, "add", "/foo")
        run(capsys, "-f", db_file, "add", "/bar")

        lines = run(capsys, "-f", db_file, "show")

        assert [line.split("\t")[0] for line in lines] == ["2", "1"]
        assert [line.split("\t")[2] for line in lines] == ["/foo", "/bar"]

    def test_show_json(self, capsys, db_file: str):
        """Test show --json prints records."""
        run(capsys, "-f", db_file, "add", "/foo")

        records = json.loads("\n".join(run(capsys, "-f", db_file, "show", "--json")))

        assert len(records) == 1
        assert records[0]["location"] == "/foo"
        assert records[0]["rank"] == 1
        assert set(records[0]) == {"id", "location", "rank", "last_access"}


class TestErrors:
    """Tests for error reporting and exit status."""

    def test_missing_command(self, capsys):
        """Test a missing command is a usage error."""
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 2

    def test_future_store_version_exits(self, capsys, db_file: str, caplog):
        """Test a store from a newer release aborts before any operation."""
        run(capsys, "-f", db_file, "add", "/foo")
        conn = sqlite3.connect(db_file)
        conn.execute("UPDATE migration_version SET version = 99 WHERE id = 1")
        conn.commit()
        conn.close()

        with caplog.at_level(logging.ERROR):
            with pytest.raises(SystemExit) as exc_info:
                main(["-f", db_file, "get"])

        assert exc_info.value.code == 1
        assert "Unrecognized database version 99" in caplog.text
        assert capsys.readouterr().out == ""

    def test_unopenable_store_exits(self, capsys, tmp_path: Path):
        """Test a store path that cannot be created exits with status 1."""
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")

        with pytest.raises(SystemExit) as exc_info:
            main(["-f", str(blocker / "jump.db"), "get"])
        assert exc_info.value.code == 1

    def test_invalid_settings_exit(self, monkeypatch):
        """Test invalid environment configuration exits with status 1."""
        monkeypatch.setenv("JUMPJUMP_PATTERN_CACHE_SIZE", "0")

        with pytest.raises(SystemExit) as exc_info:
            main(["get"])
        assert exc_info.value.code == 1
