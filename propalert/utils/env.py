"""Local ``.env`` support for propalert settings."""

from __future__ import annotations

import os
from pathlib import Path

ENV_PREFIX = "PROPALERT_"
ENV_FILE_VARIABLE = "PROPALERT_ENV_FILE"


def resolve_env_path() -> Path:
  """``PROPALERT_ENV_FILE`` when set, else ``.env`` at the repo root."""
  override = os.getenv(ENV_FILE_VARIABLE, "").strip()
  if override:
    return Path(override).expanduser()
  return Path(__file__).resolve().parents[2] / ".env"


def _unquote(value: str) -> str:
  if len(value) >= 2 and value[0] == value[-1] and value[0] in {'"', "'"}:
    return value[1:-1]
  return value


def parse_env_file(path: Path) -> dict[str, str]:
  """Read the ``PROPALERT_*`` assignments of an env file; other keys belong to other tools."""
  if not path.is_file():
    return {}

  values: dict[str, str] = {}
  for raw_line in path.read_text(encoding="utf-8").splitlines():
    line = raw_line.strip()
    if not line or line.startswith("#") or "=" not in line:
      continue
    key, value = line.removeprefix("export ").split("=", 1)
    key = key.strip()
    # The file cannot point at another file.
    if not key.startswith(ENV_PREFIX) or key == ENV_FILE_VARIABLE:
      continue
    values[key] = _unquote(value.strip())
  return values


def load_env_file(path: Path, *, override: bool = False) -> list[str]:
  """Copy settings from ``path`` into the environment and return the keys applied."""
  applied = []
  for key, value in parse_env_file(path).items():
    if not override and key in os.environ:
      continue
    os.environ[key] = value
    applied.append(key)
  return applied
