from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Protocol


@dataclass(frozen=True)
class TransportOptions:
  """
  Pass-through configuration for the RTM transport.

  ``authentication_data`` is always overwritten by the session with
  ``"api:" + api_key``.
  """

  authentication_data: Optional[str] = None
  open_timeout: float = 10.0
  call_timeout: float = 10.0
  ping_interval: Optional[float] = 20.0
  extra_headers: Optional[Mapping[str, str]] = None


class RTMClient(Protocol):
  """
  What the session needs from a real-time messaging client.

  ``call`` is fire-and-forget: it returns once the frame is handed to the
  connection. ``call_wait`` returns the remote result.
  """

  is_authenticated: bool

  async def wait_until_ready(self) -> None:
    ...

  async def call(self, method: str, payload: Any = None) -> None:
    ...

  async def call_wait(self, method: str, payload: Any = None) -> Any:
    ...

  async def close(self) -> None:
    ...


ClientFactory = Callable[[str, TransportOptions], RTMClient]
