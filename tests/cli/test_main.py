"""Tests for the resourcegraph CLI."""

import pytest

from resourcegraph.cli.main import app, create_parser


@pytest.fixture
def metadata_path(tmp_path, registry):
    path = tmp_path / "resources.yaml"
    registry.save(path)
    return path


class TestParser:
    def test_sdl_arguments(self):
        args = create_parser().parse_args(["sdl", "resources.yaml", "--federation", "-e", "EmployeeResource"])
        assert args.command == "sdl"
        assert args.federation is True
        assert args.entrypoints == "EmployeeResource"

    def test_serve_defaults(self):
        args = create_parser().parse_args(["serve"])
        assert args.config == "resourcegraph.yaml"
        assert args.port is None


class TestCommands:
    def test_no_command_prints_help(self, capsys):
        assert app([]) == 0
        assert "resourcegraph" in capsys.readouterr().out

    def test_sdl(self, metadata_path, capsys):
        assert app(["sdl", str(metadata_path)]) == 0
        out = capsys.readouterr().out
        assert "type Department {" in out
        assert "@key" not in out

    def test_sdl_federated_entrypoints(self, metadata_path, capsys):
        assert app(["sdl", str(metadata_path), "--federation", "-e", "TeamResource"]) == 0
        out = capsys.readouterr().out
        assert 'type Team @key(fields: "id")' in out
        assert "employees(" not in out

    def test_sdl_missing_file(self, tmp_path, capsys):
        assert app(["sdl", str(tmp_path / "missing.yaml")]) == 1
        assert "Error generating schema" in capsys.readouterr().out

    def test_sdl_unknown_entrypoint(self, metadata_path, capsys):
        assert app(["sdl", str(metadata_path), "-e", "GhostResource"]) == 1

    def test_serve_without_config(self, tmp_path, capsys):
        assert app(["serve", "-c", str(tmp_path / "missing.yaml")]) == 1
        assert "not found" in capsys.readouterr().out
