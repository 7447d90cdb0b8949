from __future__ import annotations

import logging
import traceback
from logging import Handler, LogRecord
from typing import Iterable, List, Optional

from .models import LogMessageKind
from .session import ZexcoreSession, get_default_session

# Records from our own loggers are never forwarded, otherwise a failing
# transport would log about itself forever.
_OWN_NAMESPACE = "zexcore_client"


def _kind_for_level(levelno: int) -> LogMessageKind:
  if levelno >= logging.ERROR:
    return LogMessageKind.Error
  if levelno >= logging.WARNING:
    return LogMessageKind.Warning
  return LogMessageKind.Information


class ZexcoreHandler(Handler):
  """
  Logging handler that turns records into zexcore log messages.
  """

  def __init__(
    self,
    session: ZexcoreSession,
    tags: Optional[Iterable[str]] = None,
    level: int = logging.NOTSET,
  ) -> None:
    super().__init__(level=level)
    self._session = session
    self._tags: List[str] = list(tags or [])

  @property
  def session(self) -> ZexcoreSession:
    return self._session

  def emit(self, record: LogRecord) -> None:
    if record.name == _OWN_NAMESPACE or record.name.startswith(_OWN_NAMESPACE + "."):
      return
    if not self._session.is_ready:
      return

    try:
      stack: Optional[str] = None
      if record.exc_info:
        _type, _value, _tb = record.exc_info
        if _tb is not None:
          stack = "".join(traceback.format_exception(_type, _value, _tb))
      elif record.stack_info:
        stack = record.stack_info

      self._session.dispatch_message(
        kind=_kind_for_level(record.levelno),
        message=record.getMessage(),
        tags=self._tags + [f"logger:{record.name}"],
        stack=stack,
      )
    except Exception:
      # Never break application logging.
      self.handleError(record)


def setup_logging(
  session: Optional[ZexcoreSession] = None,
  logger: Optional[logging.Logger] = None,
  *,
  tags: Optional[Iterable[str]] = None,
  level: int = logging.NOTSET,
) -> ZexcoreHandler:
  """
  Attach a zexcore handler to ``logger`` (the root logger by default).

  Existing handlers are kept. If the logger already forwards to the same
  session, that handler is returned instead of adding a second one.
  """
  session = session or get_default_session()
  target_logger = logger or logging.getLogger()

  for existing in target_logger.handlers:
    if isinstance(existing, ZexcoreHandler) and existing.session is session:
      return existing

  handler = ZexcoreHandler(session, tags=tags, level=level)
  target_logger.addHandler(handler)
  return handler
