from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class LogMessageKind(str, Enum):
  """
  Severity of a log message as understood by the backend.
  """

  Information = "information"
  Warning = "warning"
  Error = "error"


class AuthenticationId(BaseModel):
  """
  Authentication details of the principal behind the API key.
  """

  uid: str
  email: str
  token: str


class Project(BaseModel):
  """
  A user's project, as returned by ``libGetProject``.
  """

  # The backend may add fields over time; keep them instead of failing.
  model_config = ConfigDict(extra="allow")

  id: str
  name: str
  image: Optional[str] = None
  owner: str
  created: int
  updated: int
  platform: str


class LogMessage(BaseModel):
  """
  Canonical log message shape sent with ``libLogMessage``.
  """

  model_config = ConfigDict(extra="allow")

  kind: LogMessageKind = LogMessageKind.Information
  message: str = ""
  tags: Optional[List[str]] = None
  stack: Optional[str] = None

  # Injected by the session, never taken from the caller.
  project: str
  created: int = Field(..., description="Unix timestamp in milliseconds")


class Event(BaseModel):
  """
  Application event sent with ``libLogEvent``.
  """

  model_config = ConfigDict(extra="allow")

  name: str = ""
  data: Dict[str, Any] = Field(default_factory=dict)
  tags: Optional[List[str]] = None

  project: str
  id: str
  timestamp: int = Field(..., description="Unix timestamp in milliseconds")
