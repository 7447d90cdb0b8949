"""
Session state and log/event forwarding.

A ``ZexcoreSession`` owns one transport client, the options it was
initialized with and the project resolved at initialization. Every record it
sends carries that project's id.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import dataclasses
import logging
import time
import uuid
from typing import Any, Dict, Mapping, Optional, Set, Union

from pydantic import ValidationError

from .config import ZexcoreOptions
from .errors import DataError, StateError
from .models import AuthenticationId, Event, LogMessage, LogMessageKind, Project
from .transport import ClientFactory, RTMClient, TransportOptions, create_client

logger = logging.getLogger(__name__)
_transport_logger = logging.getLogger("zexcore_client.transport")

RecordInput = Union[Mapping[str, Any], str, None]


def _now_ms() -> int:
  return int(time.time() * 1000)


class ZexcoreSession:
  """
  Connects to the backend once and forwards log messages and events.

  ``initialize`` must complete before anything is logged. Transport errors on
  the logging path are logged and dropped; they never reach the caller.
  """

  def __init__(self, client_factory: ClientFactory = create_client) -> None:
    self._client_factory = client_factory
    self._client: Optional[RTMClient] = None
    self._options: Optional[ZexcoreOptions] = None
    self._transport_options: Optional[TransportOptions] = None
    self._project: Optional[Project] = None
    self._authentication: Optional[AuthenticationId] = None
    self._loop: Optional[asyncio.AbstractEventLoop] = None
    self._inflight: Set[Any] = set()

  @property
  def options(self) -> Optional[ZexcoreOptions]:
    return self._options

  @property
  def client(self) -> Optional[RTMClient]:
    return self._client

  @property
  def project(self) -> Optional[Project]:
    return self._project

  @property
  def is_ready(self) -> bool:
    """True once ``initialize`` has resolved a project."""
    return self._project is not None and self._client is not None

  async def initialize(
    self,
    options: ZexcoreOptions,
    transport_options: Optional[TransportOptions] = None,
  ) -> Project:
    """
    Connect, authenticate with the API key and resolve the project.

    Options are validated before any transport activity. The project is only
    requested once the transport reports it is ready.
    """
    options.validate()

    self._options = options
    self._transport_options = dataclasses.replace(
      transport_options or TransportOptions(),
      authentication_data="api:" + options.api_key,
    )
    self._project = None
    self._loop = asyncio.get_running_loop()

    # A previous connection is flushed and closed before reconnecting.
    await self.close()

    client = self._client_factory(options.endpoint, self._transport_options)
    self._client = client
    try:
      await client.wait_until_ready()
      self._project = await self.get_project()
    except BaseException:
      self._client = None
      await client.close()
      raise
    logger.debug("Initialized zexcore session for project %s", self._project.id)
    return self._project

  def get_authentication_id(self) -> Optional[AuthenticationId]:
    """
    Return the authenticated principal, if the backend ever reported one.
    """
    return self._authentication

  async def get_project(self) -> Project:
    """
    Fetch the configured project from the backend with ``libGetProject``.
    """
    if self._options is None:
      raise StateError("Please initialize the client first.")
    if self._client is None:
      raise StateError("Please initialize the client first.")
    if not self._client.is_authenticated:
      raise StateError("Please authenticate using API key first.")

    result = await self._client.call_wait("libGetProject", self._options.project_id)
    if not result:
      raise DataError("Invalid project id.")
    try:
      return Project.model_validate(result)
    except ValidationError as exc:
      raise DataError(f"Invalid project returned by the backend: {exc}") from exc

  async def log_message(self, message: RecordInput = None, **fields: Any) -> None:
    """
    Send a log message.

    ``message`` is either the message text or a partial record; keyword
    fields are merged over it. ``project`` and ``created`` are always set by
    the session and ``kind`` defaults to ``LogMessageKind.Information``.
    """
    record = self.build_message(message, **fields)
    await self._send("libLogMessage", record.model_dump(mode="json", exclude_none=True))

  async def log_event(self, event: RecordInput = None, **fields: Any) -> None:
    """
    Send an event. ``project``, ``id`` and ``timestamp`` are set by the session.
    """
    record = self.build_event(event, **fields)
    await self._send("libLogEvent", record.model_dump(mode="json", exclude_none=True))

  def dispatch_message(self, message: RecordInput = None, **fields: Any) -> None:
    """
    Non-blocking ``log_message`` for synchronous callers.

    The record is built right away, so a missing session still raises here.
    Sending happens on the session's event loop.
    """
    record = self.build_message(message, **fields)
    self._dispatch("libLogMessage", record.model_dump(mode="json", exclude_none=True))

  def dispatch_event(self, event: RecordInput = None, **fields: Any) -> None:
    """Non-blocking ``log_event`` for synchronous callers."""
    record = self.build_event(event, **fields)
    self._dispatch("libLogEvent", record.model_dump(mode="json", exclude_none=True))

  def build_message(self, message: RecordInput = None, **fields: Any) -> LogMessage:
    data = _merge(message, fields, text_key="message")
    for key in ("project", "created"):
      data.pop(key, None)
    if not data.get("kind"):
      data["kind"] = LogMessageKind.Information
    return LogMessage(**data, project=self._require_project().id, created=_now_ms())

  def build_event(self, event: RecordInput = None, **fields: Any) -> Event:
    data = _merge(event, fields, text_key="name")
    for key in ("project", "id", "timestamp"):
      data.pop(key, None)
    return Event(
      **data,
      project=self._require_project().id,
      id=uuid.uuid4().hex,
      timestamp=_now_ms(),
    )

  async def flush(self) -> None:
    """Wait for every dispatched record to be handed to the transport."""
    while self._inflight:
      pending = [
        asyncio.wrap_future(f) if isinstance(f, concurrent.futures.Future) else f
        for f in list(self._inflight)
      ]
      await asyncio.gather(*pending, return_exceptions=True)

  async def close(self) -> None:
    """Flush pending records and close the transport."""
    await self.flush()
    client, self._client = self._client, None
    if client is not None:
      await client.close()

  def _require_project(self) -> Project:
    if self._project is None or self._client is None:
      raise StateError("Please initialize the client first.")
    return self._project

  async def _send(self, method: str, payload: Dict[str, Any]) -> None:
    client = self._client
    if client is None:
      _transport_logger.warning("Dropping %s: session is closed", method)
      return
    try:
      await client.call(method, payload)
    except Exception as exc:
      # Logging must never break the host application.
      _transport_logger.warning("zexcore %s failed, record dropped: %s", method, exc)

  def _dispatch(self, method: str, payload: Dict[str, Any]) -> None:
    try:
      running = asyncio.get_running_loop()
    except RuntimeError:
      running = None

    if running is not None and running is self._loop:
      task = running.create_task(self._send(method, payload))
      self._track(task)
      return

    loop = self._loop
    if loop is None or loop.is_closed() or not loop.is_running():
      _transport_logger.warning("Dropping %s: the session's event loop is not running", method)
      return

    self._track(asyncio.run_coroutine_threadsafe(self._send(method, payload), loop))

  def _track(self, future: Any) -> None:
    self._inflight.add(future)
    future.add_done_callback(self._inflight.discard)


def _merge(value: RecordInput, fields: Mapping[str, Any], *, text_key: str) -> Dict[str, Any]:
  if value is None:
    data: Dict[str, Any] = {}
  elif isinstance(value, str):
    data = {text_key: value}
  else:
    data = dict(value)
  data.update(fields)
  return data


_default_session: Optional[ZexcoreSession] = None


def get_default_session() -> ZexcoreSession:
  """
  Return the process-wide session used by the module-level helpers.
  """
  global _default_session
  if _default_session is None:
    _default_session = ZexcoreSession()
  return _default_session


def set_default_session(session: Optional[ZexcoreSession]) -> None:
  """Replace (or with ``None``, reset) the process-wide session."""
  global _default_session
  _default_session = session


async def initialize(
  options: Optional[ZexcoreOptions] = None,
  transport_options: Optional[TransportOptions] = None,
  *,
  api_key: Optional[str] = None,
  project_id: Optional[str] = None,
  endpoint: Optional[str] = None,
) -> Project:
  """
  Initialize the default session.

  Without ``options``, they are resolved from the keyword arguments, the
  environment and ``_zexcore/config.json``.
  """
  if options is None:
    options = ZexcoreOptions.from_params_or_env(
      api_key=api_key,
      project_id=project_id,
      endpoint=endpoint,
    )
  return await get_default_session().initialize(options, transport_options)


async def get_project() -> Project:
  return await get_default_session().get_project()


def get_authentication_id() -> Optional[AuthenticationId]:
  return get_default_session().get_authentication_id()


async def log_message(message: RecordInput = None, **fields: Any) -> None:
  await get_default_session().log_message(message, **fields)


async def log_event(event: RecordInput = None, **fields: Any) -> None:
  await get_default_session().log_event(event, **fields)
