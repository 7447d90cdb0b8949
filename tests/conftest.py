from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

import pytest

from zexcore_client import ZexcoreOptions, ZexcoreSession, set_default_session

DEMO_PROJECT: Dict[str, Any] = {
  "id": "p1",
  "name": "Demo",
  "owner": "u1",
  "created": 0,
  "updated": 0,
  "platform": "web",
}


class FakeRTMClient:
  """
  In-memory RTM client. Records every call instead of touching the network.
  """

  def __init__(self, endpoint: str, options: Any, factory: "FakeClientFactory") -> None:
    self.endpoint = endpoint
    self.options = options
    self.is_authenticated = False
    self.closed = False
    self._factory = factory

  async def wait_until_ready(self) -> None:
    self.is_authenticated = self._factory.authenticate

  async def call(self, method: str, payload: Any = None) -> None:
    if self._factory.fail_calls:
      raise ConnectionError("socket is gone")
    self._factory.calls.append((method, payload))

  async def call_wait(self, method: str, payload: Any = None) -> Any:
    self._factory.waits.append((method, payload))
    if method == "libGetProject":
      return self._factory.project
    return None

  async def close(self) -> None:
    self.closed = True


class FakeClientFactory:
  def __init__(self) -> None:
    self.project: Optional[Dict[str, Any]] = dict(DEMO_PROJECT)
    self.authenticate = True
    self.fail_calls = False
    self.clients: List[FakeRTMClient] = []
    self.calls: List[Tuple[str, Any]] = []
    self.waits: List[Tuple[str, Any]] = []

  def __call__(self, endpoint: str, options: Any) -> FakeRTMClient:
    client = FakeRTMClient(endpoint, options, self)
    self.clients.append(client)
    return client

  def payloads(self, method: str) -> List[Any]:
    return [payload for name, payload in self.calls if name == method]


@pytest.fixture
def factory() -> FakeClientFactory:
  return FakeClientFactory()


@pytest.fixture
def session(factory: FakeClientFactory) -> ZexcoreSession:
  return ZexcoreSession(client_factory=factory)


@pytest.fixture
def options() -> ZexcoreOptions:
  return ZexcoreOptions(api_key="k", project_id="p1", endpoint="wss://x")


@pytest.fixture(autouse=True)
def _reset_default_session():
  set_default_session(None)
  yield
  set_default_session(None)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
  for name in ("ZEXCORE_API_KEY", "ZEXCORE_PROJECT_ID", "ZEXCORE_ENDPOINT"):
    monkeypatch.delenv(name, raising=False)
