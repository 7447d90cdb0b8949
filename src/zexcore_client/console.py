"""
Console adapter that mirrors output calls into zexcore.

``hook_with_console`` wraps an output sink exposing ``info``, ``log``,
``warn`` and ``error``. Each call is written to the sink unchanged and then
forwarded as a log message. Ending a call with a literal ``False`` keeps it
local:

    console = hook_with_console(session, tags=["worker"])
    console.info("job started", job_id)         # printed and forwarded
    console.info("noisy progress", 42, False)    # printed only
"""

from __future__ import annotations

import logging
import sys
from typing import Any, Iterable, List, Optional, TextIO

from pydantic import ValidationError

from .errors import StateError
from .models import LogMessageKind
from .session import ZexcoreSession, get_default_session

logger = logging.getLogger(__name__)


class StreamConsole:
  """
  Default sink: info/log go to stdout, warn/error to stderr.
  """

  def __init__(self, stdout: Optional[TextIO] = None, stderr: Optional[TextIO] = None) -> None:
    self._stdout = stdout
    self._stderr = stderr

  def info(self, *args: Any) -> None:
    print(*args, file=self._stdout or sys.stdout)

  def log(self, *args: Any) -> None:
    print(*args, file=self._stdout or sys.stdout)

  def warn(self, *args: Any) -> None:
    print(*args, file=self._stderr or sys.stderr)

  def error(self, *args: Any) -> None:
    print(*args, file=self._stderr or sys.stderr)


class ForwardingConsole:
  """
  Wraps a console sink and forwards every call to a zexcore session.
  """

  def __init__(
    self,
    session: ZexcoreSession,
    sink: Any,
    tags: Optional[Iterable[str]] = None,
  ) -> None:
    self.session = session
    self.sink = sink
    self.tags: Optional[List[str]] = list(tags) if tags is not None else None

  def info(self, *args: Any) -> None:
    self._emit(self.sink.info, LogMessageKind.Information, args)

  def log(self, *args: Any) -> None:
    self._emit(self.sink.log, LogMessageKind.Information, args)

  def warn(self, *args: Any) -> None:
    self._emit(self.sink.warn, LogMessageKind.Warning, args)

  def error(self, *args: Any) -> None:
    self._emit(self.sink.error, LogMessageKind.Error, args)

  def _emit(self, write: Any, kind: LogMessageKind, args: tuple) -> None:
    write(*args)

    if args and args[-1] is False:
      return

    message = args[0] if args else ""
    stack = "".join(str(arg) for arg in args[1:])
    try:
      self.session.dispatch_message(
        kind=kind,
        message=message if isinstance(message, str) else str(message),
        tags=self.tags,
        stack=stack or None,
      )
    except (StateError, ValidationError) as exc:
      logger.debug("Console message not forwarded: %s", exc)


def hook_with_console(
  session: Optional[ZexcoreSession] = None,
  tags: Optional[Iterable[str]] = None,
  sink: Any = None,
) -> ForwardingConsole:
  """
  Return a console whose info/log/warn/error calls are also sent to zexcore.

  ``sink`` defaults to a ``StreamConsole``. Wrapping a console that already
  forwards to the same session returns it unchanged.
  """
  session = session or get_default_session()
  if isinstance(sink, ForwardingConsole) and sink.session is session:
    return sink
  return ForwardingConsole(session, sink if sink is not None else StreamConsole(), tags)
