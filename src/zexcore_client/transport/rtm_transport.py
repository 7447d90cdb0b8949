from __future__ import annotations

import asyncio
import itertools
import json
import logging
from typing import Any, Dict, Optional

import websockets
from websockets.exceptions import ConnectionClosed, InvalidHandshake, InvalidURI

from ..errors import TransportError
from .base import TransportOptions

_logger = logging.getLogger("zexcore_client.transport")


class WebSocketRTMClient:
  """
  Minimal RTM client speaking JSON text frames over a websocket.

  Frames:
    -> {"type": "auth", "data": "api:<key>"}
    <- {"type": "auth", "ok": true}
    -> {"type": "call", "method": m, "payload": p}            (fire-and-forget)
    -> {"type": "call", "id": n, "method": m, "payload": p}   (request)
    <- {"type": "response", "id": n, "result": r}             (or "error")

  The connection is opened lazily by ``wait_until_ready``. A single reader
  task resolves pending requests by id. There is no reconnect.
  """

  def __init__(self, endpoint: str, options: Optional[TransportOptions] = None) -> None:
    self.endpoint = endpoint
    self.options = options or TransportOptions()
    self.is_authenticated = False
    self._ws: Any = None
    self._opening: Optional[asyncio.Task] = None
    self._reader: Optional[asyncio.Task] = None
    self._pending: Dict[int, "asyncio.Future[Any]"] = {}
    self._ids = itertools.count(1)

  async def wait_until_ready(self) -> None:
    """
    Open the connection and authenticate, once.

    Concurrent callers share the same opening attempt.
    """
    if self._opening is None:
      self._opening = asyncio.ensure_future(self._open())
    await self._opening

  async def call(self, method: str, payload: Any = None) -> None:
    await self._send({"type": "call", "method": method, "payload": payload})

  async def call_wait(self, method: str, payload: Any = None) -> Any:
    call_id = next(self._ids)
    future: "asyncio.Future[Any]" = asyncio.get_running_loop().create_future()
    self._pending[call_id] = future
    try:
      await self._send({"type": "call", "id": call_id, "method": method, "payload": payload})
      return await asyncio.wait_for(future, timeout=self.options.call_timeout)
    except asyncio.TimeoutError:
      raise TransportError(
        f"Call '{method}' timed out after {self.options.call_timeout}s"
      ) from None
    finally:
      self._pending.pop(call_id, None)

  async def close(self) -> None:
    ws, self._ws = self._ws, None
    self.is_authenticated = False
    if ws is not None:
      await ws.close()
    if self._reader is not None:
      await asyncio.gather(self._reader, return_exceptions=True)
      self._reader = None

  async def _open(self) -> None:
    _logger.debug("Connecting to %s", self.endpoint)
    try:
      ws = await websockets.connect(
        self.endpoint,
        open_timeout=self.options.open_timeout,
        ping_interval=self.options.ping_interval,
        additional_headers=dict(self.options.extra_headers or {}),
      )
    except (OSError, asyncio.TimeoutError, InvalidHandshake, InvalidURI) as exc:
      raise TransportError(f"Could not connect to {self.endpoint}: {exc}") from exc

    if self.options.authentication_data is not None:
      try:
        await self._authenticate(ws)
      except BaseException:
        await ws.close()
        raise

    self._ws = ws
    self._reader = asyncio.create_task(self._read_loop(ws))
    _logger.debug("Connected to %s (authenticated=%s)", self.endpoint, self.is_authenticated)

  async def _authenticate(self, ws: Any) -> None:
    await ws.send(json.dumps({"type": "auth", "data": self.options.authentication_data}))
    try:
      raw = await asyncio.wait_for(ws.recv(), timeout=self.options.call_timeout)
    except asyncio.TimeoutError:
      raise TransportError("Timed out waiting for authentication reply") from None
    except ConnectionClosed as exc:
      raise TransportError(f"Connection closed during authentication: {exc}") from exc

    try:
      reply = json.loads(raw)
    except ValueError:
      raise TransportError("Malformed authentication reply") from None

    if not isinstance(reply, dict) or reply.get("type") != "auth" or not reply.get("ok"):
      reason = reply.get("error") if isinstance(reply, dict) else None
      raise TransportError(f"Authentication rejected: {reason or 'unknown reason'}")
    self.is_authenticated = True

  async def _send(self, frame: Dict[str, Any]) -> None:
    if self._ws is None:
      raise TransportError("Client is not connected")
    try:
      await self._ws.send(json.dumps(frame))
    except ConnectionClosed as exc:
      raise TransportError(f"Connection closed: {exc}") from exc

  async def _read_loop(self, ws: Any) -> None:
    try:
      async for raw in ws:
        try:
          frame = json.loads(raw)
        except ValueError:
          _logger.warning("Ignoring malformed frame from %s", self.endpoint)
          continue
        if not isinstance(frame, dict) or frame.get("type") != "response":
          continue

        call_id = frame.get("id")
        if not isinstance(call_id, int) or isinstance(call_id, bool):
          _logger.warning("Ignoring response with invalid id %r from %s", call_id, self.endpoint)
          continue

        future = self._pending.pop(call_id, None)
        if future is None or future.done():
          continue
        if frame.get("error"):
          future.set_exception(TransportError(f"Remote call failed: {frame['error']}"))
        else:
          future.set_result(frame.get("result"))
    except ConnectionClosed as exc:
      _logger.warning("Connection to %s closed: %s", self.endpoint, exc)
    finally:
      self.is_authenticated = False
      pending, self._pending = self._pending, {}
      for future in pending.values():
        if not future.done():
          future.set_exception(TransportError("Connection closed"))


def create_client(endpoint: str, options: Optional[TransportOptions] = None) -> WebSocketRTMClient:
  """
  Build the default RTM client. Call ``wait_until_ready`` to connect.
  """
  return WebSocketRTMClient(endpoint, options)
