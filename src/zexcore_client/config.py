from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import urlparse

from .errors import ConfigurationError

CONFIG_PATH = Path("_zexcore/config.json")


@dataclass(frozen=True)
class ZexcoreOptions:
  """
  Options used to connect a session to the zexcore backend.

  Immutable once handed to ``ZexcoreSession.initialize``.
  """

  api_key: str
  project_id: str
  endpoint: str

  @classmethod
  def from_env(cls) -> "ZexcoreOptions":
    """
    Load options from environment variables.

    Reads:
      - ZEXCORE_API_KEY
      - ZEXCORE_PROJECT_ID
      - ZEXCORE_ENDPOINT
    """
    return cls.from_params_or_env()

  @classmethod
  def from_params_or_env(
    cls,
    api_key: Optional[str] = None,
    project_id: Optional[str] = None,
    endpoint: Optional[str] = None,
  ) -> "ZexcoreOptions":
    """
    Build options from explicit parameters, falling back to the environment.

    Priority per field:
      1. Explicit function arguments
      2. Environment variables
      3. Config file (_zexcore/config.json)

    There is no default API key or project id; the result is validated and
    ``ConfigurationError`` is raised when something is missing.
    """
    file_values = _read_config_file()

    key = api_key or os.getenv("ZEXCORE_API_KEY") or _pick(file_values, "apiKey", "api_key")
    proj = (
      project_id
      or os.getenv("ZEXCORE_PROJECT_ID")
      or _pick(file_values, "projectId", "project_id")
    )
    url = endpoint or os.getenv("ZEXCORE_ENDPOINT") or _pick(file_values, "endpoint")

    options = cls(api_key=key, project_id=proj, endpoint=url)
    options.validate()
    return options

  def validate(self) -> None:
    """
    Check the options, in order: project id, API key, endpoint.
    """
    if not self.project_id:
      raise ConfigurationError(
        "Project ID is not set. Pass project_id or set ZEXCORE_PROJECT_ID."
      )
    if not self.api_key:
      raise ConfigurationError(
        "API key is not set. Pass api_key or set ZEXCORE_API_KEY."
      )
    _validate_endpoint(self.endpoint)


def _read_config_file() -> Dict[str, Any]:
  if not CONFIG_PATH.exists():
    return {}
  try:
    data = json.loads(CONFIG_PATH.read_text())
  except (OSError, ValueError):
    return {}
  return data if isinstance(data, dict) else {}


def _pick(values: Dict[str, Any], *keys: str) -> str:
  for key in keys:
    value = values.get(key)
    if value:
      return str(value)
  return ""


def _validate_endpoint(url: str) -> None:
  parsed = urlparse(url or "")
  if parsed.scheme not in ("ws", "wss") or not parsed.netloc:
    raise ConfigurationError(
      f"Invalid endpoint '{url}'. "
      "Expected a websocket URL like wss://rtm.example.com."
    )
