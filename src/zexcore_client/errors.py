"""
Exceptions raised by the zexcore client.

Initialization and project lookup errors are raised to the caller. Transport
failures on the logging path are logged and dropped by the session instead.
"""

from __future__ import annotations

__all__ = [
  "ConfigurationError",
  "DataError",
  "StateError",
  "TransportError",
  "ZexcoreError",
]


class ZexcoreError(Exception):
  """Base class for all zexcore client errors."""


class ConfigurationError(ZexcoreError, ValueError):
  """Options are missing or malformed (empty project id, bad endpoint, ...)."""


class StateError(ZexcoreError, RuntimeError):
  """The session is not initialized or the transport is not authenticated."""


class DataError(ZexcoreError):
  """The backend returned no project, or a project we cannot parse."""


class TransportError(ZexcoreError):
  """Raised by the websocket transport adapter."""
