"""Tests for the command line entry point."""

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from retroasset import __version__
from retroasset.__main__ import build_parser, load_settings, main


class TestParser:
    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["--version"])
        assert exc_info.value.code == 0
        assert capsys.readouterr().out.strip() == f"retroarch-asset-server {__version__}"

    def test_unknown_argument(self):
        with pytest.raises(SystemExit) as exc_info:
            main(["serve-everything"])
        assert exc_info.value.code == 2

    def test_flags_override_settings(self, rom_root: Path, monkeypatch):
        monkeypatch.setenv("RETROASSET_LISTEN", "127.0.0.1:7000")
        args = build_parser().parse_args(["--listen", "127.0.0.1:7001", "--rom", str(rom_root)])
        settings = load_settings(args)
        assert settings.listen_port == 7001
        assert settings.rom_path == str(rom_root.resolve())

    def test_unset_flags_keep_environment(self, monkeypatch):
        monkeypatch.setenv("RETROASSET_LISTEN", "127.0.0.1:7000")
        monkeypatch.delenv("RETROASSET_SYSTEM_PATH", raising=False)
        settings = load_settings(build_parser().parse_args([]))
        assert settings.listen_port == 7000
        assert settings.system_path == ""


class TestMain:
    def test_invalid_path_exits_before_serving(self, tmp_path: Path, capsys):
        with patch("retroasset.server.build_server") as mock_build:
            code = main(["--system", str(tmp_path / "missing")])
        assert code == 2
        mock_build.assert_not_called()
        assert "Invalid configuration" in capsys.readouterr().err

    def test_clean_shutdown_exits_zero(self):
        server = MagicMock()
        with patch("retroasset.server.build_server", return_value=server):
            code = main(["--listen", "127.0.0.1:0"])
        assert code == 0
        server.start.assert_called_once()

    def test_bind_failure_exits_one(self):
        server = MagicMock()
        server.start.side_effect = OSError(98, "Address already in use")
        with patch("retroasset.server.build_server", return_value=server):
            code = main(["--listen", "127.0.0.1:0"])
        assert code == 1

    def test_flag_replaces_invalid_environment(self, rom_root: Path, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("RETROASSET_ROM_PATH", str(tmp_path / "missing"))
        server = MagicMock()
        with patch("retroasset.server.build_server", return_value=server) as mock_build:
            code = main(["--listen", "127.0.0.1:0", "--rom", str(rom_root)])
        assert code == 0
        (settings,), _ = mock_build.call_args
        assert settings.rom_path == str(rom_root.resolve())
        server.start.assert_called_once()


class TestAppModule:
    def test_import_does_not_read_environment(self, tmp_path: Path, monkeypatch):
        import importlib

        import retroasset.main

        monkeypatch.setenv("RETROASSET_ROM_PATH", str(tmp_path / "missing"))
        module = importlib.reload(retroasset.main)
        assert not hasattr(module, "app")

    def test_run_goes_through_asset_server(self, rom_root: Path):
        from retroasset.config import Settings
        from retroasset.main import run

        settings = Settings(listen="127.0.0.1:0", rom_path=str(rom_root), system_path="", frontend_path="")
        server = MagicMock()
        with patch("retroasset.main.get_settings", return_value=settings), \
                patch("retroasset.server.build_server", return_value=server) as mock_build:
            run()
        mock_build.assert_called_once_with(settings)
        server.start.assert_called_once()
