from .base import ClientFactory, RTMClient, TransportOptions
from .rtm_transport import WebSocketRTMClient, create_client

__all__ = [
  "ClientFactory",
  "RTMClient",
  "TransportOptions",
  "WebSocketRTMClient",
  "create_client",
]
