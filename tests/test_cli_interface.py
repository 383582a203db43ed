"""Test CLI interface and command-line argument parsing."""

from unittest.mock import patch

import pytest

from monumentexport import __version__
from monumentexport.core.exporter import MonumentExporter
from monumentexport.export_photos import build_parser, main


class TestArgumentParsing:
    """Test command-line argument parsing."""

    def test_defaults(self):
        args = build_parser().parse_args(["/src", "/dest"])

        assert str(args.source) == "/src"
        assert str(args.dest) == "/dest"
        assert not any(
            [
                args.flatten,
                args.save_edits,
                args.save_comments,
                args.export_gps,
                args.export_tags,
                args.tags_as_folders,
                args.dryrun,
            ]
        )
        assert args.db_path is None

    def test_all_flags(self):
        args = build_parser().parse_args(
            [
                "/src",
                "/dest",
                "--flatten",
                "--save-edits",
                "--save-comments",
                "--export-gps",
                "--export-tags",
                "--tags-as-folders",
                "--dry-run",
                "--segment-limit",
                "1024",
            ]
        )

        assert args.flatten and args.save_edits and args.tags_as_folders
        assert args.dryrun
        assert args.segment_limit == 1024

    def test_help_exits_zero(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["--help"])

        assert exc_info.value.code == 0
        assert "--tags-as-folders" in capsys.readouterr().out

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["--version"])

        assert exc_info.value.code == 0
        assert __version__ in capsys.readouterr().out

    def test_missing_positional(self):
        with pytest.raises(SystemExit) as exc_info:
            main(["/src"])
        assert exc_info.value.code == 2


class TestCLIWorkflows:
    """Test complete CLI workflow scenarios."""

    def test_missing_source(self, temp_dir, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main([str(temp_dir / "nope"), str(temp_dir / "out")])

        assert exc_info.value.code == 1
        assert "Source directory does not exist" in capsys.readouterr().out

    def test_missing_database(self, temp_dir, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main([str(temp_dir), str(temp_dir / "out")])

        assert exc_info.value.code == 1
        assert "Monument database not found" in capsys.readouterr().out

    def test_invalid_segment_limit(self, mock_database, mock_monument_structure):
        with pytest.raises(SystemExit) as exc_info:
            main(
                [
                    str(mock_monument_structure["root"]),
                    str(mock_monument_structure["dest"]),
                    "--segment-limit",
                    "0",
                ]
            )
        assert exc_info.value.code == 2

    @pytest.mark.slow
    def test_full_run(self, mock_database, mock_files, mock_monument_structure, capsys):
        dest = mock_monument_structure["dest"]

        main([str(mock_monument_structure["root"]), str(dest), "--save-comments"])

        out = capsys.readouterr().out
        assert "Save comments to EXIF: YES" in out
        assert "✅ Successfully exported 5 files" in out
        assert "📊 EXPORT SUMMARY" in out
        assert (dest / "bob_2" / "Summer Trip" / "IMG_0042.jpg").exists()

    @pytest.mark.slow
    def test_dry_run(self, mock_database, mock_files, mock_monument_structure, capsys):
        dest = mock_monument_structure["dest"]

        main([str(mock_monument_structure["root"]), str(dest), "--dryrun"])

        out = capsys.readouterr().out
        assert "DRY RUN MODE: No files will be copied" in out
        assert "Successfully simulated the export of 5 files" in out
        assert not dest.exists()

    def test_explicit_db_path(self, temp_dir, mock_database, mock_files, capsys):
        source = mock_files[42].parents[2]
        dest = temp_dir / "explicit"

        main([str(source), str(dest), "--db-path", str(mock_database), "--dryrun"])

        assert f"Database file is {mock_database}" in capsys.readouterr().out

    def test_interrupt_prints_summary(
        self, mock_database, mock_files, mock_monument_structure, capsys
    ):
        with patch.object(
            MonumentExporter, "export_record", side_effect=KeyboardInterrupt
        ):
            with pytest.raises(SystemExit) as exc_info:
                main(
                    [
                        str(mock_monument_structure["root"]),
                        str(mock_monument_structure["dest"]),
                    ]
                )

        assert exc_info.value.code == 1
        out = capsys.readouterr().out
        assert "Export interrupted by user" in out
        assert "📊 EXPORT SUMMARY" in out
