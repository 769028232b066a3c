"""
Tests for configuration, logging helpers and the command-line interface.
"""

import logging
from pathlib import Path

import pytest

from cmr_notes.cli import build_parser, main
from cmr_notes.config import ConfigurationManager, get_config
from cmr_notes.output_handler.state_store import StateStore
from cmr_notes.postprocessor.derived_row import DerivedRow
from cmr_notes.utils.exceptions import ConfigurationError
from cmr_notes.utils.logger import ROOT_LOGGER_NAME, get_logger, page_logger, set_level, setup_logger


@pytest.fixture
def stored_rows():
    rows = [
        DerivedRow(id="row-1", datum="01-01-2024", aantal="12,5", unit="E20", hoogte_enkel=200,
                   hoogte_stack=200, aantal2=13, file_name="scan.pdf", page_index=1),
        DerivedRow(id="row-2", datum="02-01-2024", aantal="8", unit="M15", hoogte_enkel=150,
                   hoogte_stack=300, aantal2=4, pallet="BLOK", file_name="scan.pdf", page_index=2,
                   warnings=["Unit format invalid."]),
    ]
    StateStore().save_rows(rows)
    ConfigurationManager.reset()
    return rows


class TestConfiguration:
    """Tests for ConfigurationManager"""

    def test_dot_notation(self):
        assert get_config("pipeline.concurrency") == 2
        assert get_config("service.model") == "gpt-4.1"
        assert get_config("no.such.key", "fallback") == "fallback"

    def test_custom_file(self, tmp_path):
        custom = tmp_path / "custom.yaml"
        custom.write_text("pipeline:\n  concurrency: 5\n")

        ConfigurationManager(str(custom))

        assert get_config("pipeline.concurrency") == 5

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            ConfigurationManager(str(tmp_path / "absent.yaml"))

    def test_invalid_yaml(self, tmp_path):
        broken = tmp_path / "broken.yaml"
        broken.write_text("pipeline: [unclosed\n")
        with pytest.raises(ConfigurationError):
            ConfigurationManager(str(broken))

    def test_environment_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("CMR_NOTES_CONCURRENCY", "4")
        monkeypatch.setenv("CMR_NOTES_ENDPOINT", "http://extractor.test/api/extract")
        monkeypatch.setenv("CMR_NOTES_OUTPUT_DIR", "exports")

        assert get_config("pipeline.concurrency") == 4
        assert get_config("extraction.endpoint") == "http://extractor.test/api/extract"
        assert Path(get_config("paths.output_dir")).resolve() == (tmp_path / "exports").resolve()

    def test_bad_environment_value(self, monkeypatch):
        monkeypatch.setenv("CMR_NOTES_CONCURRENCY", "many")
        with pytest.raises(ConfigurationError):
            ConfigurationManager()

    @pytest.mark.parametrize("body", [
        "pipeline:\n  concurrency: 0\n",
        "input:\n  pdf:\n    scale: -1\n",
        "- just\n- a list\n",
    ])
    def test_unusable_settings(self, tmp_path, body):
        custom = tmp_path / "custom.yaml"
        custom.write_text(body)
        with pytest.raises(ConfigurationError):
            ConfigurationManager(str(custom))


class TestCli:
    """Tests for the cmr-notes command"""

    def test_export_requires_a_target(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["export"])

    def test_list(self, stored_rows, capsys):
        assert main(["list", "--sort", "aantal2", "--filter", "scan"]) == 0

        lines = capsys.readouterr().out.splitlines()
        assert lines[1].startswith("row-2")
        assert lines[2].startswith("row-1")
        assert lines[-1] == "2 of 2 row(s)"

    def test_show(self, stored_rows, capsys):
        assert main(["show", "row-2"]) == 0
        out = capsys.readouterr().out
        assert "BLOK" in out
        assert "Unit format invalid." in out

    def test_show_unknown_row(self, stored_rows):
        assert main(["show", "nope"]) == 1

    def test_issues(self, stored_rows, capsys):
        assert main(["issues"]) == 0
        assert capsys.readouterr().out.strip() == "scan.pdf p2: Unit format invalid."

    def test_export_tsv(self, stored_rows, capsys):
        assert main(["export", "--tsv"]) == 0
        lines = capsys.readouterr().out.splitlines()
        assert lines[0].startswith("datum\taantal\tunit")
        assert lines[1] == "01-01-2024\t12,5\tE20\t200\t200\t13\tEURO"

    def test_export_csv(self, stored_rows, tmp_path):
        target = tmp_path / "out.csv"
        assert main(["export", "--csv", str(target)]) == 0
        assert '"12,5"' in target.read_text(encoding="utf-8")

    def test_export_empty_store(self, capsys):
        assert main(["export", "--csv", "out.csv"]) == 0
        assert "Nothing to export." in capsys.readouterr().out

    def test_clear(self, stored_rows, capsys):
        assert main(["clear"]) == 0
        assert "Cleared all rows and storage" in capsys.readouterr().out
        ConfigurationManager.reset()
        assert StateStore().load_rows() == []

    def test_extract_without_pdfs(self, tmp_path):
        other = tmp_path / "photo.jpg"
        other.write_bytes(b"jpeg")
        assert main(["extract", str(other)]) == 1

    def test_missing_config_file(self, tmp_path):
        assert main(["--config", str(tmp_path / "absent.yaml"), "issues"]) == 1


class TestLogging:
    """Tests for the package logger helpers"""

    def test_page_logger_stamps_records(self, caplog):
        log = page_logger(get_logger("tests"), "scan.pdf p2/4")

        with caplog.at_level(logging.INFO, logger=ROOT_LOGGER_NAME):
            log.info("3 note(s) returned")

        assert caplog.records[-1].page == "scan.pdf p2/4"
        assert caplog.records[-1].name == "cmr_notes.tests"

    def test_set_level_updates_handlers(self):
        setup_logger(level="INFO", colorize=False)

        set_level("DEBUG")

        package_logger = logging.getLogger(ROOT_LOGGER_NAME)
        assert package_logger.level == logging.DEBUG
        assert all(handler.level == logging.DEBUG for handler in package_logger.handlers)
