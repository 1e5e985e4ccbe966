"""Document path templates and matching."""

from __future__ import annotations

import re
from functools import lru_cache

_PLACEHOLDER_RE = re.compile(r"^\{([A-Za-z_][A-Za-z0-9_]*)\}$")


class PathMismatchError(ValueError):
  """Raised when a document path does not match the expected trigger template."""


def split_path(path: str) -> list[str]:
  """Split a slash separated document path, ignoring leading and trailing slashes."""
  return [segment for segment in path.strip("/").split("/") if segment]


@lru_cache(maxsize=64)
def _compile(template: str) -> tuple[tuple[str, bool], ...]:
  compiled: list[tuple[str, bool]] = []
  for segment in split_path(template):
    match = _PLACEHOLDER_RE.match(segment)
    if match:
      compiled.append((match.group(1), True))
    else:
      compiled.append((segment, False))
  return tuple(compiled)


def match_path(template: str, path: str) -> dict[str, str] | None:
  """Return parameter bindings when ``path`` matches ``template``, else None.

  Templates use ``{name}`` segments, e.g. ``organizations/{organizationId}/violations/{violationId}``.
  """
  segments = split_path(path)
  compiled = _compile(template)
  if len(segments) != len(compiled):
    return None

  params: dict[str, str] = {}
  for segment, (expected, is_param) in zip(segments, compiled, strict=True):
    if is_param:
      params[expected] = segment
    elif segment != expected:
      return None
  return params


def match_any(templates: tuple[str, ...], path: str) -> dict[str, str]:
  """Match the first template that fits ``path`` or raise PathMismatchError."""
  for template in templates:
    params = match_path(template, path)
    if params is not None:
      return params
  raise PathMismatchError(f"Document path {path!r} does not match any of {list(templates)}")


def canonical_path(path: str) -> str:
  """Return ``path`` without empty segments or leading and trailing slashes."""
  return "/".join(split_path(path))


def document_id(path: str) -> str:
  """Return the last segment of a document path."""
  segments = split_path(path)
  return segments[-1] if segments else ""
