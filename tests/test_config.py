from __future__ import annotations

import sys

import pytest

from core.config import AppSettings, _parse_env_lines, get_user_env_file, write_user_env_vars


def test_defaults(monkeypatch):
    monkeypatch.delenv("POI_INGEST_STRICT_MODE", raising=False)
    settings = AppSettings(_env_file=None)
    assert settings.strict_mode is True
    assert settings.dedupe_tolerance_degrees == 0.0001
    assert settings.fallback_min_interval_seconds == 1.1


def test_env_prefix(monkeypatch):
    monkeypatch.setenv("POI_INGEST_STRICT_MODE", "false")
    monkeypatch.setenv("POI_INGEST_AI_MODEL", "llama3")
    settings = AppSettings(_env_file=None)
    assert settings.strict_mode is False
    assert settings.ai_model == "llama3"


def test_parse_env_lines():
    text = '# comment\nA=1\nB="two"\n\nnot a pair\n'
    assert _parse_env_lines(text) == {"A": "1", "B": "two"}


@pytest.mark.skipif(sys.platform in ("win32", "darwin"), reason="XDG layout")
def test_write_user_env_vars_merges(tmp_path, monkeypatch):
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
    write_user_env_vars({"POI_INGEST_AI_MODEL": "gpt-4o-mini"})
    path = write_user_env_vars({"POI_INGEST_AI_API_KEY": "sk-test"})

    assert path == get_user_env_file()
    assert path.parent == tmp_path / "poi-ingest"
    assert _parse_env_lines(path.read_text(encoding="utf-8")) == {
        "POI_INGEST_AI_API_KEY": "sk-test",
        "POI_INGEST_AI_MODEL": "gpt-4o-mini",
    }
