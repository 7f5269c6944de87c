"""
Realtime layer: the reconnecting client channel and the server-side session hub.
"""

from .channel import (
    ChannelOptions,
    ChannelStateMachine,
    RealtimeChannel,
    WebSocketMessage,
    resolve_endpoint,
)
from .hub import SessionHub, build_event

__all__ = [
    'ChannelOptions',
    'ChannelStateMachine',
    'RealtimeChannel',
    'WebSocketMessage',
    'resolve_endpoint',
    'SessionHub',
    'build_event',
]
