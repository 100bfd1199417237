"""Network and platform adapters for realtime notifications."""

from .api_client import NotificationApiClient
from .platform import HeadlessPlatform, PushRecord, ToastRecord
from .transport import AiohttpTransport, aiohttp_transport_factory

__all__ = [
    "AiohttpTransport",
    "HeadlessPlatform",
    "NotificationApiClient",
    "PushRecord",
    "ToastRecord",
    "aiohttp_transport_factory",
]
