"""Integration tests for the CLI module."""

from textwrap import dedent

import pytest
import structlog
from click.testing import CliRunner

from blocksmith import __version__
from blocksmith.cli import cli


NOTES = dedent(
    """\
    - Parent
      id:: p
      - Child
        id:: c
    - Other
      id:: o
    """
)


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Point config and log directories at a temporary home."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    yield home
    structlog.reset_defaults()


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def notes(tmp_path):
    path = tmp_path / "notes.md"
    path.write_text(NOTES)
    return path


def write_config(home, text):
    config_dir = home / ".config" / "blocksmith"
    config_dir.mkdir(parents=True)
    (config_dir / "config.yaml").write_text(text)


class TestShowCommand:
    """Integration tests for `blocksmith show`."""

    def test_show_tree(self, runner, notes):
        """Test printing the outline with ids."""
        result = runner.invoke(cli, ["show", str(notes), "--ids"])

        assert result.exit_code == 0
        assert "Parent" in result.output
        assert "Child" in result.output
        assert "notes.md" in result.output

    def test_show_empty_file(self, runner, tmp_path):
        """Test that an empty file says so."""
        path = tmp_path / "empty.md"
        path.write_text("")

        result = runner.invoke(cli, ["show", str(path)])

        assert result.exit_code == 0
        assert "(empty outline)" in result.output

    def test_show_missing_file(self, runner, tmp_path):
        """Test the error for a missing file."""
        result = runner.invoke(cli, ["show", str(tmp_path / "nope.md")])

        assert result.exit_code == 1
        assert "File not found" in result.output

    def test_writes_log_file(self, runner, notes, isolated_home):
        """Test that commands log to the cache directory."""
        runner.invoke(cli, ["show", str(notes)])

        assert (isolated_home / ".cache" / "blocksmith" / "logs" / "blocksmith.log").exists()


class TestExportCommand:
    """Integration tests for `blocksmith export`."""

    def test_export_all(self, runner, notes):
        """Test exporting every block as indented text."""
        result = runner.invoke(cli, ["export", str(notes)])

        assert result.exit_code == 0
        assert result.output == "Parent\n  Child\nOther\n"

    def test_export_selected_with_bullets(self, runner, notes):
        """Test exporting chosen blocks as outline markdown."""
        result = runner.invoke(cli, ["export", str(notes), "--id", "p", "--id", "c", "--bullets"])

        assert result.exit_code == 0
        assert result.output == "- Parent\n  - Child\n"

    def test_export_unknown_id(self, runner, notes):
        """Test that unknown ids are reported."""
        result = runner.invoke(cli, ["export", str(notes), "--id", "zzz"])

        assert result.exit_code == 1
        assert "Unknown block id(s): zzz" in result.output

    def test_export_uses_configured_indent(self, runner, notes, isolated_home):
        """Test that indent_size from the config file is used."""
        write_config(isolated_home, "editor:\n  indent_size: 4\n")

        result = runner.invoke(cli, ["export", str(notes)])

        assert result.output == "Parent\n    Child\nOther\n"

    def test_invalid_config(self, runner, notes, isolated_home):
        """Test that an invalid config file stops the command."""
        write_config(isolated_home, "editor:\n  indent_size: 99\n")

        result = runner.invoke(cli, ["export", str(notes)])

        assert result.exit_code == 1
        assert "Configuration validation failed" in result.output


class TestApplyCommand:
    """Integration tests for `blocksmith apply`."""

    def test_indent_rewrites_file(self, runner, notes):
        """Test that an applied operation is saved to the file."""
        result = runner.invoke(cli, ["apply", str(notes), "indent", "o"])

        assert result.exit_code == 0
        assert "Applied indent to o" in result.output
        assert notes.read_text() == dedent(
            """\
            - Parent
              id:: p
              - Child
                id:: c
              - Other
                id:: o
            """
        )

    def test_split_at_offset(self, runner, notes):
        """Test splitting a block at a character offset."""
        result = runner.invoke(cli, ["apply", str(notes), "split", "o", "--offset", "2"])

        assert result.exit_code == 0
        text = notes.read_text()
        assert "- Ot\n  id:: o\n- her\n" in text

    def test_toggle_collapse(self, runner, notes):
        """Test that collapsing writes the collapsed property."""
        result = runner.invoke(cli, ["apply", str(notes), "toggle-collapse", "p"])

        assert result.exit_code == 0
        assert "- Parent\n  collapsed:: true\n  id:: p\n" in notes.read_text()

    def test_to_code(self, runner, notes):
        """Test converting a block to a code block."""
        result = runner.invoke(cli, ["apply", str(notes), "to-code", "o"])

        assert result.exit_code == 0
        assert "- ```\n  Other\n  ```\n  id:: o\n" in notes.read_text()

    def test_no_change(self, runner, notes):
        """Test that an ineligible operation leaves the file alone."""
        before = notes.read_text()

        result = runner.invoke(cli, ["apply", str(notes), "outdent", "p"])

        assert result.exit_code == 0
        assert "No change: outdent is not possible for this block" in result.output
        assert notes.read_text() == before

    def test_unknown_block(self, runner, notes):
        """Test the error for an unknown block id."""
        result = runner.invoke(cli, ["apply", str(notes), "delete", "zzz"])

        assert result.exit_code == 1
        assert "Block not found: zzz" in result.output

    def test_unknown_operation(self, runner, notes):
        """Test that operations are validated by click."""
        result = runner.invoke(cli, ["apply", str(notes), "explode", "p"])

        assert result.exit_code == 2

    def test_without_ids(self, runner, notes, isolated_home):
        """Test that include_block_ids: false drops id:: properties."""
        write_config(isolated_home, "persistence:\n  include_block_ids: false\n")

        result = runner.invoke(cli, ["apply", str(notes), "delete", "c"])

        assert result.exit_code == 0
        assert notes.read_text() == "- Parent\n- Other\n"


def test_version(runner):
    """Test --version."""
    result = runner.invoke(cli, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output
