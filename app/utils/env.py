"""Minimal .env support so local runs pick up VIDEOLIB_* settings."""

from __future__ import annotations

import os
from pathlib import Path


def default_env_path() -> Path:
  """Return the .env path next to the project root."""
  return Path(__file__).resolve().parents[2] / ".env"


def parse_env_lines(lines: list[str]) -> dict[str, str]:
  """Parse KEY=VALUE lines, ignoring comments, blanks and `export` prefixes."""
  values: dict[str, str] = {}
  for raw_line in lines:
    line = raw_line.strip()
    if not line or line.startswith("#"):
      continue
    line = line.removeprefix("export ").lstrip()
    key, sep, value = line.partition("=")
    key = key.strip()
    if not sep or not key:
      continue
    value = value.strip()
    # Strip one level of matching quotes.
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {'"', "'"}:
      value = value[1:-1]
    values[key] = value
  return values


def load_env_file(path: Path, *, override: bool = False) -> None:
  """Copy values from a .env file into os.environ; existing variables win unless `override`."""
  if not path.is_file():
    return

  for key, value in parse_env_lines(path.read_text(encoding="utf-8").splitlines()).items():
    if not override and key in os.environ:
      continue
    os.environ[key] = value
