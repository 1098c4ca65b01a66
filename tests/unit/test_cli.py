"""Tests for the command-line entry point (local list commands only)."""

import json
from pathlib import Path

import pytest

from main import main
from src.core.config import write_default_settings


@pytest.fixture()
def config(tmp_path: Path) -> str:
    path = tmp_path / "settings.yaml"
    write_default_settings(
        path,
        store={"path": str(tmp_path / "vacancies.json"), "seed_examples": False},
    )
    return str(path)


def _list_json(config: str, capsys: pytest.CaptureFixture[str], *extra: str) -> list[dict[str, object]]:
    capsys.readouterr()
    main(["list", "--config", config, "--export", "json", *extra])
    return json.loads(capsys.readouterr().out)  # type: ignore[no-any-return]


class TestLocalCommands:
    def test_add_then_list(self, config: str, capsys: pytest.CaptureFixture[str]) -> None:
        main(["add", "--config", config, "--title", "Go Dev", "--company", "Acme",
              "--keywords", "go, backend, Go", "--status", "applied"])
        assert "Added 'Go Dev'" in capsys.readouterr().out

        data = _list_json(config, capsys)
        assert len(data) == 1
        assert data[0]["keywords"] == ["go", "backend"]
        assert data[0]["status"] == "Applied"

    def test_list_filters_and_sorts(self, config: str, capsys: pytest.CaptureFixture[str]) -> None:
        for title in ("beta", "Alpha", "Gamma"):
            main(["add", "--config", config, "--title", title, "--company", "Acme"])
        main(["add", "--config", config, "--title", "Other", "--company", "Globex"])

        data = _list_json(config, capsys, "--field", "company", "--query", "acme", "--desc")
        assert [d["title"] for d in data] == ["Gamma", "beta", "Alpha"]

    def test_edit_and_delete(self, config: str, capsys: pytest.CaptureFixture[str]) -> None:
        main(["add", "--config", config, "--title", "QA", "--company", "Acme"])
        main(["edit", "--config", config, "qa", "acme", "--status", "Interview", "--notes", "Monday"])
        data = _list_json(config, capsys)
        assert data[0]["status"] == "Interview"
        assert data[0]["notes"] == "Monday"

        main(["delete", "--config", config, "QA", "Acme"])
        assert _list_json(config, capsys) == []

    def test_duplicate_add_exits(self, config: str, capsys: pytest.CaptureFixture[str]) -> None:
        main(["add", "--config", config, "--title", "QA", "--company", "Acme"])
        with pytest.raises(SystemExit) as exc_info:
            main(["add", "--config", config, "--title", "qa", "--company", "ACME"])
        assert exc_info.value.code == 1
        assert "already in the local list" in capsys.readouterr().err

    def test_online_without_api_key_exits(
        self, config: str, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.delenv("JOOBLE_API_KEY", raising=False)
        with pytest.raises(SystemExit):
            main(["online", "--config", config, "python"])
        assert "API key missing" in capsys.readouterr().err


class TestResumes:
    def test_unsupported_resume_rejected(self, config: str, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["add", "--config", config, "--title", "X", "--resume", "virus.exe"])
        assert exc_info.value.code == 1
        assert "Unsupported resume file format" in capsys.readouterr().err
        assert _list_json(config, capsys) == []

    def test_archive_lists_attached_resumes(self, config: str, capsys: pytest.CaptureFixture[str]) -> None:
        main(["add", "--config", config, "--title", "Go Dev", "--company", "Acme",
              "--resume", "/home/me/cv/go-cv.PDF"])
        main(["add", "--config", config, "--title", "QA", "--company", "Acme"])
        capsys.readouterr()

        main(["resumes", "--config", config])
        out = capsys.readouterr().out
        assert "go-cv.PDF | Go Dev | Acme" in out
        assert "/home/me/cv/go-cv.PDF" in out
        assert "QA" not in out

    def test_empty_archive(self, config: str, capsys: pytest.CaptureFixture[str]) -> None:
        main(["resumes", "--config", config])
        assert "No resumes attached." in capsys.readouterr().out


class TestConfigErrors:
    def test_malformed_yaml(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        path = tmp_path / "settings.yaml"
        path.write_text("store: [unclosed\n")
        with pytest.raises(SystemExit) as exc_info:
            main(["list", "--config", str(path)])
        assert exc_info.value.code == 1
        assert "Error loading config" in capsys.readouterr().err


class TestInitConfig:
    def test_refuses_overwrite(self, config: str) -> None:
        with pytest.raises(SystemExit):
            main(["init-config", "--output", config])

    def test_writes_file(self, tmp_path: Path) -> None:
        out = tmp_path / "config" / "settings.yaml"
        main(["init-config", "--output", str(out)])
        assert "jooble.org" in out.read_text()
