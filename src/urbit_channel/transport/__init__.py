"""Channel transports.

The default is HTTPChannelTransport: PUT for commands, SSE for events.
"""

from .base import ChannelTransport, ServerEvent
from .http import HTTPChannelTransport
from .sse import SSEEventStream, parse_sse

__all__ = [
    "ChannelTransport",
    "ServerEvent",
    "HTTPChannelTransport",
    "SSEEventStream",
    "parse_sse",
]
