"""Tests for xcinstall.__main__ module."""

import json
import logging
from pathlib import Path
from unittest.mock import Mock

import pytest
import structlog
from click.testing import CliRunner

from xcinstall.__main__ import main
from xcinstall.core.errors import IndexDisabledError
from xcinstall.core.installer import Installer


class TestMainCLI:
    """Tests for main CLI functionality."""

    @pytest.fixture(autouse=True)
    def restore_logging(self):
        """Restore the root logger level and structlog setup after each test."""
        root = logging.getLogger()
        level = root.level
        config = structlog.get_config()
        yield
        root.setLevel(level)
        structlog.configure(**config)

    @pytest.fixture
    def installer(self):
        installer = Mock(spec=Installer)
        installer.symlinks_to.return_value = Path("/Applications/Xcode-11.3.app")
        return installer

    def test_main_help(self) -> None:
        """Test main command help output."""
        runner = CliRunner()
        result = runner.invoke(main, ["--help"])
        assert result.exit_code == 0
        assert "Install and switch between Xcode releases" in result.output
        for command in ("install", "installed", "list", "select", "selected", "update"):
            assert command in result.output

    def test_version_option(self) -> None:
        """Test --version option."""
        runner = CliRunner()
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    @pytest.mark.parametrize(
        ("flags", "level"),
        [([], logging.WARNING), (["--verbose"], logging.INFO), (["-d"], logging.DEBUG)],
    )
    def test_log_level_flags(self, config_file, installer, flags, level) -> None:
        """Test that verbosity flags set the root logger level."""
        runner = CliRunner()
        result = runner.invoke(
            main, ["--config", str(config_file), *flags, "-o", "plain", "selected"], obj={"installer": installer}
        )
        assert result.exit_code == 0
        assert logging.getLogger().level == level

    def test_log_level_from_config(self, tmp_path, installer) -> None:
        config_file = tmp_path / "config.json"
        config_file.write_text(json.dumps({"cache_dir": str(tmp_path / "cache"), "log_level": "ERROR"}))

        runner = CliRunner()
        result = runner.invoke(
            main, ["--config", str(config_file), "-o", "plain", "selected"], obj={"installer": installer}
        )
        assert result.exit_code == 0
        assert logging.getLogger().level == logging.ERROR

    def test_selected_json(self, config_file, installer) -> None:
        runner = CliRunner()
        result = runner.invoke(
            main, ["--config", str(config_file), "-o", "json", "selected"], obj={"installer": installer}
        )
        assert result.exit_code == 0
        assert json.loads(result.output) == {"selected": "/Applications/Xcode-11.3.app"}

    def test_invalid_config(self, tmp_path) -> None:
        """Test that an invalid configuration file exits with an error."""
        config_file = tmp_path / "config.json"
        config_file.write_text(json.dumps({"output_format": "xml", "cache_dir": str(tmp_path)}))

        runner = CliRunner()
        result = runner.invoke(main, ["--config", str(config_file), "selected"])
        assert result.exit_code == 1
        assert "Failed to load configuration" in result.output

    def test_index_disabled_exits(self, config_file) -> None:
        """Test that a disabled Spotlight index ends the process cleanly."""
        installer = Mock(spec=Installer)
        installer.symlinks_to.side_effect = IndexDisabledError("Please enable Spotlight indexing for /Applications.")

        runner = CliRunner()
        result = runner.invoke(
            main, ["--config", str(config_file), "-o", "plain", "selected"], obj={"installer": installer}
        )

        assert result.exit_code == 1
        assert "Please enable Spotlight indexing" in result.output
