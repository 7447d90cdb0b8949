"""
zexcore_client

Thin client that forwards application log messages and events to the
zexcore logging backend over a real-time messaging connection.
"""

from .config import ZexcoreOptions
from .console import ForwardingConsole, StreamConsole, hook_with_console
from .errors import ConfigurationError, DataError, StateError, TransportError, ZexcoreError
from .logging_setup import ZexcoreHandler, setup_logging
from .models import AuthenticationId, Event, LogMessage, LogMessageKind, Project
from .session import (
  ZexcoreSession,
  get_authentication_id,
  get_default_session,
  get_project,
  initialize,
  log_event,
  log_message,
  set_default_session,
)
from .transport import RTMClient, TransportOptions, WebSocketRTMClient, create_client

__all__ = [
  "AuthenticationId",
  "ConfigurationError",
  "DataError",
  "Event",
  "ForwardingConsole",
  "LogMessage",
  "LogMessageKind",
  "Project",
  "RTMClient",
  "StateError",
  "StreamConsole",
  "TransportError",
  "TransportOptions",
  "WebSocketRTMClient",
  "ZexcoreError",
  "ZexcoreHandler",
  "ZexcoreOptions",
  "ZexcoreSession",
  "create_client",
  "get_authentication_id",
  "get_default_session",
  "get_project",
  "hook_with_console",
  "initialize",
  "log_event",
  "log_message",
  "set_default_session",
  "setup_logging",
]
