"""Tests for the fwflash CLI: argument parsing, exit codes and output."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from fwflash.cli import main
from fwflash.lock import HardwareLock


class TestMain:
    def test_probe_flash_succeeds(self, tools, elf_image: Path, tmp_path: Path, capsys):
        tools.installed.add("probe-rs-cli")
        with patch("fwflash.runner.subprocess.run", return_value=MagicMock(returncode=0)) as mock_run:
            rc = main([
                "--image", str(elf_image), "--chip", "STM32F103", "--project-dir", str(tmp_path),
            ])

        assert rc == 0
        mock_run.assert_called_once()
        assert mock_run.call_args[0][0] == [
            "/usr/bin/probe-rs-cli", "download", str(elf_image), "--chip", "STM32F103",
        ]
        assert "[flash] Flashed using probe-rs" in capsys.readouterr().err

    def test_dry_run_prints_commands(self, tools, elf_image: Path, tmp_path: Path, capsys):
        tools.installed.update({"dfu-util", "objcopy"})
        with patch("fwflash.runner.subprocess.run") as mock_run:
            rc = main(["--dry-run", "--method", "dfu", "--image", str(elf_image), "--project-dir", str(tmp_path)])

        assert rc == 0
        mock_run.assert_not_called()
        captured = capsys.readouterr()
        assert "DRY RUN: /usr/bin/objcopy -O binary" in captured.out
        assert "DRY RUN: /usr/bin/dfu-util -a 0 -D" in captured.out
        assert "Dry run complete: would flash using dfu-util" in captured.err

    def test_json_output(self, tools, bin_image: Path, tmp_path: Path, capsys):
        tools.installed.add("dfu-util")
        rc = main(["--json", "--dry-run", "--image", str(bin_image), "--project-dir", str(tmp_path)])

        assert rc == 0
        captured = capsys.readouterr()
        payload = json.loads(captured.out)
        assert payload["success"] is True
        assert payload["backend"] == "dfu"
        assert payload["dry_run"] is True
        assert payload["format"] == "bin"
        assert payload["converted_from"] is None
        assert [a["outcome"] for a in payload["attempts"]] == ["unavailable"] * 3 + ["success"]
        assert payload["commands"] == [["/usr/bin/dfu-util", "-a", "0", "-D", str(bin_image)]]
        assert "DRY RUN:" in captured.err

    def test_esptool_without_port_is_config_error(self, tools, bin_image: Path, tmp_path: Path, capsys):
        rc = main(["--method", "esptool", "--image", str(bin_image), "--project-dir", str(tmp_path)])

        assert rc == 2
        assert tools.queried == []
        assert "InvalidConfiguration: esptool requires --port" in capsys.readouterr().err

    def test_no_backend_exit_code(self, tools, elf_image: Path, tmp_path: Path, capsys):
        rc = main(["--image", str(elf_image), "--project-dir", str(tmp_path)])
        assert rc == 1
        assert "[flash][ERROR] NoBackendSucceeded:" in capsys.readouterr().err

    def test_no_build_without_image(self, tools, tmp_path: Path, capsys):
        rc = main(["--no-build", "--project-dir", str(tmp_path)])
        assert rc == 1
        assert "NoImageProvided" in capsys.readouterr().err

    def test_json_error_payload(self, tools, elf_image: Path, tmp_path: Path, capsys):
        tools.installed.add("openocd")
        with patch("fwflash.runner.subprocess.run", return_value=MagicMock(returncode=1)):
            rc = main(["--json", "--method", "openocd", "--image", str(elf_image), "--project-dir", str(tmp_path)])

        assert rc == 1
        payload = json.loads(capsys.readouterr().out)
        assert payload["success"] is False
        assert payload["backend"] is None
        assert payload["error"].startswith("BackendFailed: openocd method failed")
        assert payload["attempts"][0]["outcome"] == "failed"

    def test_invalid_method_rejected_by_parser(self):
        with pytest.raises(SystemExit) as exc_info:
            main(["--method", "jtag"])
        assert exc_info.value.code == 2

    @pytest.mark.skipif(not sys.platform.startswith("linux"), reason="flock conflicts between open files are Linux behaviour")
    def test_busy_interface(self, tools, bin_image: Path, tmp_path: Path, capsys):
        tools.installed.add("dfu-util")
        with HardwareLock("/dev/ttyACM0"):
            with patch("fwflash.runner.subprocess.run") as mock_run:
                rc = main([
                    "--method", "dfu", "--port", "/dev/ttyACM0",
                    "--image", str(bin_image), "--project-dir", str(tmp_path),
                ])
        assert rc == 1
        mock_run.assert_not_called()
        assert "InterfaceBusy" in capsys.readouterr().err


class TestDispatch:
    def test_arguments_forwarded(self, monkeypatch):
        fake = MagicMock(return_value=0)
        monkeypatch.setattr("fwflash.cli.cmd_flash", fake)

        rc = main([
            "-b", "esp32", "-p", "/dev/ttyUSB0", "-m", "esptool", "-n", "-i", "app.bin",
            "--chip", "esp32", "--timeout", "60", "--config", "lab.yaml",
        ])

        assert rc == 0
        kwargs = fake.call_args.kwargs
        assert kwargs["board"] == "esp32"
        assert kwargs["port"] == "/dev/ttyUSB0"
        assert kwargs["method"] == "esptool"
        assert kwargs["no_build"] is True
        assert kwargs["image"] == "app.bin"
        assert kwargs["timeout"] == 60.0
        assert kwargs["config"] == "lab.yaml"
        assert kwargs["json_mode"] is False

    def test_defaults(self, monkeypatch):
        fake = MagicMock(return_value=0)
        monkeypatch.setattr("fwflash.cli.cmd_flash", fake)
        main([])
        kwargs = fake.call_args.kwargs
        assert kwargs["method"] is None
        assert kwargs["dry_run"] is False
        assert kwargs["project_dir"] is None
