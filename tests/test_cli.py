"""Tests for the command-line interface."""

import json

import pytest
from PIL import Image

from conftest import FakeBackend
from portalshot import cli
from portalshot.utils import capture


@pytest.fixture
def config_file(tmp_path):
    return str(tmp_path / "config.yaml")


class TestProcessCommand:
    """Test --process."""

    def test_border_and_resize(self, tmp_path, config_file) -> None:
        source = tmp_path / "in.png"
        destination = tmp_path / "out.png"
        Image.new("RGB", (100, 50), (0, 128, 0)).save(source)

        code = cli.main([
            "--config", config_file,
            "--process", str(source), str(destination),
            "--resize", "60,30", "--border", "2",
        ])

        assert code == 0
        with Image.open(destination) as result:
            assert result.size == (64, 34)

    def test_missing_input(self, tmp_path, config_file, capsys) -> None:
        code = cli.main([
            "--config", config_file,
            "--process", str(tmp_path / "nope.png"), str(tmp_path / "out.png"),
        ])
        assert code == 1
        assert "Error:" in capsys.readouterr().err

    def test_bad_resize(self, tmp_path, config_file) -> None:
        source = tmp_path / "in.png"
        Image.new("RGB", (10, 10)).save(source)
        code = cli.main([
            "--config", config_file,
            "--process", str(source), str(tmp_path / "out.png"), "--resize", "0,10",
        ])
        assert code == 1


class TestConfigCommands:
    """Test --config-show and --config-reset."""

    def test_show_defaults(self, config_file, capsys) -> None:
        assert cli.main(["--config", config_file, "--config-show"]) == 0
        output = capsys.readouterr().out
        assert "default_mode: region" in output
        assert "backend: auto" in output

    def test_backend_flag_overrides_config(self, config_file, capsys) -> None:
        assert cli.main(["--config", config_file, "--backend", "x11", "--config-show"]) == 0
        assert "backend: x11" in capsys.readouterr().out

    def test_reset_rewrites_broken_file(self, config_file, capsys) -> None:
        with open(config_file, "w") as f:
            f.write("default_mode: [broken\n")

        assert cli.main(["--config", config_file, "--config-show"]) == 1
        assert cli.main(["--config", config_file, "--config-reset"]) == 0
        assert cli.main(["--config", config_file, "--config-show"]) == 0


class TestScreenshotCommand:
    """Test --screenshot with a fake capture backend."""

    @pytest.fixture
    def backend(self, monkeypatch, qapp):
        backend = FakeBackend(size=(800, 600))
        monkeypatch.setattr(capture, "create_backend", lambda *args, **kwargs: backend)
        return backend

    def test_area_capture(self, backend, tmp_path, config_file, capsys) -> None:
        output = tmp_path / "area.png"
        code = cli.main([
            "--config", config_file,
            "--screenshot", "--area", "10,20,300,200", "--output", str(output),
        ])

        assert code == 0
        assert backend.requests == [True]
        assert backend.cleaned_up
        with Image.open(output) as saved:
            assert saved.size == (300, 200)
        assert f"Screenshot saved: {output}" in capsys.readouterr().out

    @pytest.mark.parametrize(
        "mode, interactive",
        [("window", True), ("region", True), ("screen", False)],
    )
    def test_area_keeps_requested_mode(self, backend, tmp_path, config_file, capsys, mode, interactive) -> None:
        code = cli.main([
            "--config", config_file,
            "--screenshot", "--mode", mode, "--area", "0,0,100,50",
            "--output", str(tmp_path / "shot.png"), "--json",
        ])

        assert code == 0
        assert backend.requests == [interactive]
        payload = json.loads(capsys.readouterr().out)
        assert payload["mode"] == mode
        assert (payload["width"], payload["height"]) == (100, 50)

    def test_json_output(self, backend, tmp_path, config_file, capsys) -> None:
        output = tmp_path / "full.jpg"
        code = cli.main([
            "--config", config_file,
            "--screenshot", "--mode", "screen", "--output", str(output), "--json",
        ])

        assert code == 0
        payload = json.loads(capsys.readouterr().out)
        assert payload["path"] == str(output)
        assert payload["format"] == "jpeg"
        assert payload["mode"] == "screen"
        assert (payload["width"], payload["height"]) == (800, 600)

    def test_area_outside_raster(self, backend, tmp_path, config_file, capsys) -> None:
        code = cli.main([
            "--config", config_file,
            "--screenshot", "--area", "0,0,900,600", "--output", str(tmp_path / "x.png"),
        ])

        assert code == 1
        assert "Invalid region" in capsys.readouterr().err
        assert not (tmp_path / "x.png").exists()

    def test_malformed_area(self, config_file, capsys) -> None:
        code = cli.main(["--config", config_file, "--screenshot", "--area", "1,2,3"])
        assert code == 1
        assert "x,y,width,height" in capsys.readouterr().err

    def test_unknown_mode(self, config_file, capsys) -> None:
        code = cli.main(["--config", config_file, "--screenshot", "--mode", "panorama"])
        assert code == 1
        assert "Unknown capture mode" in capsys.readouterr().err
