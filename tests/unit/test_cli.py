"""Unit tests for the command-line interface."""

from click.testing import CliRunner

from metafuse.cli import cli, parse_batch_line
from metafuse.models.metadata import AlbumQuery, ArtistQuery


class TestParseBatchLine:
    """Test parse_batch_line function."""

    def test_artist_line(self):
        assert parse_batch_line("Radiohead\n") == ArtistQuery("Radiohead")

    def test_album_line(self):
        assert parse_batch_line("Radiohead\tOK Computer\n") == AlbumQuery(
            title="OK Computer", artist="Radiohead"
        )

    def test_comments_and_blank_lines(self):
        assert parse_batch_line("# favourites") is None
        assert parse_batch_line("   \n") is None


class TestCli:
    """Test CLI commands that need no network."""

    def test_help_lists_commands(self):
        result = CliRunner().invoke(cli, ["--help"])

        assert result.exit_code == 0
        for command in ("artist", "album", "album-cover", "enrich", "serve"):
            assert command in result.output

    def test_enrich_with_nothing_to_do(self, tmp_path):
        """A file of comments exits cleanly without building an aggregator."""
        path = tmp_path / "batch.txt"
        path.write_text("# nothing here\n\n")

        result = CliRunner().invoke(cli, ["enrich", str(path)], obj={})

        assert result.exit_code == 0

    def test_bad_config_exits(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("logging:\n  format: xml\n")

        result = CliRunner().invoke(cli, ["--config", str(path), "artist", "Radiohead"])

        assert result.exit_code == 1
        assert "Error loading configuration" in result.output
