from __future__ import annotations

import os

import pytest

from propalert.utils.env import load_env_file, parse_env_file, resolve_env_path


@pytest.fixture(autouse=True)
def isolated_environ(monkeypatch):
  monkeypatch.setattr(os, "environ", dict(os.environ))


def test_only_prefixed_keys_are_loaded(tmp_path):
  env_file = tmp_path / ".env"
  env_file.write_text('# local\nPROPALERT_TASK_SECRET="abc"\nexport PROPALERT_DEBUG=true\nDATABASE_URL=postgres://x\nPROPALERT_ENV_FILE=/elsewhere\nnot a line\n', encoding="utf-8")
  for name in ("PROPALERT_TASK_SECRET", "PROPALERT_DEBUG", "DATABASE_URL"):
    os.environ.pop(name, None)

  applied = load_env_file(env_file)

  assert sorted(applied) == ["PROPALERT_DEBUG", "PROPALERT_TASK_SECRET"]
  assert os.environ["PROPALERT_TASK_SECRET"] == "abc"
  assert os.environ["PROPALERT_DEBUG"] == "true"
  assert "DATABASE_URL" not in os.environ


def test_real_environment_wins(tmp_path, monkeypatch):
  env_file = tmp_path / ".env"
  env_file.write_text("PROPALERT_TASK_SECRET=from-file\n", encoding="utf-8")
  monkeypatch.setenv("PROPALERT_TASK_SECRET", "from-env")

  assert load_env_file(env_file) == []
  assert os.environ["PROPALERT_TASK_SECRET"] == "from-env"


def test_env_file_override_variable(tmp_path, monkeypatch):
  custom = tmp_path / "staging.env"
  monkeypatch.setenv("PROPALERT_ENV_FILE", str(custom))

  assert resolve_env_path() == custom


def test_default_env_file_is_at_repo_root(monkeypatch):
  monkeypatch.delenv("PROPALERT_ENV_FILE", raising=False)

  path = resolve_env_path()

  assert path.name == ".env"
  assert (path.parent / "propalert" / "config.py").is_file()


def test_missing_file_parses_to_nothing(tmp_path):
  assert parse_env_file(tmp_path / "absent.env") == {}
