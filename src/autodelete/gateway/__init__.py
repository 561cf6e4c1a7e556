"""
Chat platform adapters.
"""

from autodelete.gateway.interface import AdminAuthorizer, ChannelGateway, MessageEvent

__all__ = [
    "AdminAuthorizer",
    "ChannelGateway",
    "MessageEvent",
]
