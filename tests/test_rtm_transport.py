import json
import logging
import socket
from typing import Any, Dict, List

import pytest
import websockets

from zexcore_client import (
  TransportError,
  TransportOptions,
  WebSocketRTMClient,
  ZexcoreOptions,
  ZexcoreSession,
  create_client,
)

from conftest import DEMO_PROJECT


class FakeBackend:
  """
  Tiny RTM server: checks the API key and answers libGetProject.
  """

  def __init__(self, api_key: str = "k", bad_id_first: bool = False) -> None:
    self.api_key = api_key
    self.bad_id_first = bad_id_first
    self.frames: List[Dict[str, Any]] = []

  async def handler(self, ws) -> None:
    async for raw in ws:
      frame = json.loads(raw)
      if frame["type"] == "auth":
        ok = frame["data"] == "api:" + self.api_key
        await ws.send(json.dumps({"type": "auth", "ok": ok, "error": None if ok else "bad key"}))
        continue

      self.frames.append(frame)
      if "id" not in frame:
        continue
      if self.bad_id_first:
        await ws.send(json.dumps({"type": "response", "id": [frame["id"]], "result": "wrong"}))
      if frame["method"] == "libGetProject":
        result = DEMO_PROJECT if frame["payload"] == DEMO_PROJECT["id"] else None
        await ws.send(json.dumps({"type": "response", "id": frame["id"], "result": result}))
      else:
        await ws.send(json.dumps({"type": "response", "id": frame["id"], "error": "unknown method"}))


async def _serve(backend: FakeBackend):
  server = await websockets.serve(backend.handler, "127.0.0.1", 0)
  port = list(server.sockets)[0].getsockname()[1]
  return server, f"ws://127.0.0.1:{port}"


async def _stop(server) -> None:
  server.close()
  await server.wait_closed()


@pytest.mark.asyncio
async def test_session_round_trip_over_websocket():
  backend = FakeBackend()
  server, url = await _serve(backend)
  session = ZexcoreSession()
  try:
    project = await session.initialize(ZexcoreOptions(api_key="k", project_id="p1", endpoint=url))
    await session.log_message("over the wire", tags=["e2e"])
    await session.log_event("signup", data={"plan": "pro"})
    # A request/response round trip guarantees earlier frames were handled.
    await session.get_project()
  finally:
    await session.close()
    await _stop(server)

  assert project.name == "Demo"
  methods = [frame["method"] for frame in backend.frames]
  assert methods == ["libGetProject", "libLogMessage", "libLogEvent", "libGetProject"]
  message = backend.frames[1]["payload"]
  assert message["message"] == "over the wire"
  assert message["project"] == "p1"
  assert "id" not in backend.frames[1]
  assert backend.frames[2]["payload"]["data"] == {"plan": "pro"}


@pytest.mark.asyncio
async def test_rejected_api_key_raises_transport_error():
  server, url = await _serve(FakeBackend(api_key="other"))
  client = create_client(url, TransportOptions(authentication_data="api:k"))
  try:
    with pytest.raises(TransportError, match="bad key"):
      await client.wait_until_ready()
    assert not client.is_authenticated
  finally:
    await client.close()
    await _stop(server)


@pytest.mark.asyncio
async def test_remote_error_is_raised_from_call_wait():
  server, url = await _serve(FakeBackend())
  client = WebSocketRTMClient(url, TransportOptions(authentication_data="api:k"))
  try:
    await client.wait_until_ready()
    assert client.is_authenticated
    with pytest.raises(TransportError, match="unknown method"):
      await client.call_wait("libSomethingElse", {})
    assert await client.call_wait("libGetProject", "missing") is None
  finally:
    await client.close()
    await _stop(server)


@pytest.mark.asyncio
async def test_unreachable_endpoint_raises_transport_error():
  with socket.socket() as sock:
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]

  client = create_client(f"ws://127.0.0.1:{port}", TransportOptions(open_timeout=2.0))
  with pytest.raises(TransportError, match="Could not connect"):
    await client.wait_until_ready()


@pytest.mark.asyncio
async def test_call_before_connect_raises_transport_error():
  client = create_client("ws://127.0.0.1:1")

  with pytest.raises(TransportError, match="not connected"):
    await client.call("libLogMessage", {})


@pytest.mark.asyncio
async def test_response_with_invalid_id_is_ignored(caplog):
  server, url = await _serve(FakeBackend(bad_id_first=True))
  client = WebSocketRTMClient(url, TransportOptions(authentication_data="api:k"))
  try:
    await client.wait_until_ready()
    with caplog.at_level(logging.WARNING, logger="zexcore_client.transport"):
      first = await client.call_wait("libGetProject", "p1")
      second = await client.call_wait("libGetProject", "p1")
    assert client.is_authenticated
  finally:
    await client.close()
    await _stop(server)

  assert first == DEMO_PROJECT
  assert second == DEMO_PROJECT
  assert "invalid id" in caplog.text


async def _silent_handler(ws) -> None:
  async for _ in ws:
    pass


@pytest.mark.asyncio
async def test_authentication_reply_timeout():
  server = await websockets.serve(_silent_handler, "127.0.0.1", 0)
  port = list(server.sockets)[0].getsockname()[1]
  client = create_client(
    f"ws://127.0.0.1:{port}",
    TransportOptions(authentication_data="api:k", call_timeout=0.2),
  )
  try:
    with pytest.raises(TransportError, match="authentication reply"):
      await client.wait_until_ready()
    assert not client.is_authenticated
  finally:
    await client.close()
    await _stop(server)


@pytest.mark.asyncio
async def test_call_wait_timeout():
  server = await websockets.serve(_silent_handler, "127.0.0.1", 0)
  port = list(server.sockets)[0].getsockname()[1]
  client = create_client(f"ws://127.0.0.1:{port}", TransportOptions(call_timeout=0.2))
  try:
    await client.wait_until_ready()
    with pytest.raises(TransportError, match="timed out"):
      await client.call_wait("libGetProject", "p1")
    assert client._pending == {}
  finally:
    await client.close()
    await _stop(server)
