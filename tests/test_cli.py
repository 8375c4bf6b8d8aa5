"""Tests for the command-line interface."""

import json
from unittest.mock import patch

import pytest

from mindsort import cli
from mindsort.models import ChunkProposal


@pytest.fixture
def cli_service(service):
    """Route every CLI command to the test service."""
    with patch.object(cli, "_service", return_value=service):
        yield service


class TestHelp:
    def test_help(self, capsys) -> None:
        assert cli.main(["--help"]) == 0
        assert "mindsort list" in capsys.readouterr().out

    def test_version(self, capsys) -> None:
        assert cli.main(["--version"]) == 0
        assert capsys.readouterr().out.startswith("mindsort ")


class TestCapture:
    def test_preview_does_not_save(self, cli_service, completion, capsys) -> None:
        completion.complete.return_value = json.dumps([{"content": "Idea: app", "category": "ideas"}])

        assert cli.main(["Idea:", "app"]) == 0

        out = capsys.readouterr().out
        assert "1 proposed chunks:" in out
        assert "Not saved" in out
        assert cli_service.count("local") == 0

    def test_save_with_intensity(self, cli_service, completion, capsys) -> None:
        completion.complete.return_value = json.dumps([{"content": "Deadline", "category": "worries_anxiety"}])

        assert cli.main(["--save", "-i", "high", "Deadline"]) == 0

        chunk = cli_service.list_chunks("local")[0]
        assert chunk.emotional_intensity == "high"
        assert "Saved 1 chunks." in capsys.readouterr().out

    def test_classifier_error_exit_code(self, cli_service, completion, capsys) -> None:
        completion.complete.return_value = "garbage"
        assert cli.main(["--save", "text"]) == 1
        assert "Invalid response format" in capsys.readouterr().err


class TestCommands:
    def _seed(self, service) -> str:
        return service.confirm("local", [ChunkProposal(content="seed", category="ideas")])[0].id

    def test_rank_pin_star_delete(self, cli_service, capsys) -> None:
        chunk_id = self._seed(cli_service)
        prefix = chunk_id[:8]

        assert cli.main(["rank", prefix, "2"]) == 0
        assert cli.main(["pin", prefix]) == 0
        assert cli.main(["star", prefix]) == 0
        stored = cli_service.get("local", chunk_id)
        assert (stored.importance, stored.pinned, stored.starred) == ("2", True, True)

        assert cli.main(["rank", prefix, "none"]) == 0
        assert cli_service.get("local", chunk_id).importance is None

        assert cli.main(["delete", prefix]) == 0
        assert cli.main(["delete", prefix]) == 1
        assert "not found" in capsys.readouterr().err

    def test_edit(self, cli_service) -> None:
        chunk_id = self._seed(cli_service)
        assert cli.main(["edit", chunk_id[:8], "wish", "a", "new", "wish"]) == 0
        chunk = cli_service.get("local", chunk_id)
        assert (chunk.category, chunk.content) == ("wish", "a new wish")

    def test_bad_tier(self, cli_service, capsys) -> None:
        chunk_id = self._seed(cli_service)
        assert cli.main(["rank", chunk_id[:8], "urgent"]) == 1
        assert "Invalid importance" in capsys.readouterr().err

    def test_list_and_ranked(self, cli_service, capsys, monkeypatch) -> None:
        monkeypatch.setenv("NO_COLOR", "1")
        self._seed(cli_service)

        assert cli.main(["list"]) == 0
        assert cli.main(["ranked", "ideas"]) == 0
        assert cli.main(["ranked", "nope"]) == 1

        out = capsys.readouterr().out
        assert "IDEAS (1)" in out
        assert "IDEAS BY PRIORITY" in out

    def test_export_to_file(self, cli_service, tmp_path) -> None:
        self._seed(cli_service)
        path = tmp_path / "out.csv"
        assert cli.main(["export", str(path)]) == 0
        assert path.read_text(encoding="utf-8").splitlines()[1].startswith("seed,ideas")

    def test_categories(self, capsys) -> None:
        assert cli.main(["categories"]) == 0
        assert "ideas" in capsys.readouterr().out
