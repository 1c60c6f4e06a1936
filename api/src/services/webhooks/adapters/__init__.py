"""
Built-in inbound platform adapters.
"""

from src.models.enums import Platform
from src.services.webhooks.adapters.meta import (
    FacebookAdapter,
    InstagramAdapter,
    MetaAdapter,
    WhatsAppAdapter,
)
from src.services.webhooks.adapters.twitter import TwitterAdapter

__all__ = [
    "MetaAdapter",
    "FacebookAdapter",
    "InstagramAdapter",
    "WhatsAppAdapter",
    "TwitterAdapter",
]

# Registry of built-in adapters, keyed by URL platform segment
BUILTIN_ADAPTERS: dict[str, type] = {
    Platform.FACEBOOK.value: FacebookAdapter,
    Platform.INSTAGRAM.value: InstagramAdapter,
    Platform.WHATSAPP.value: WhatsAppAdapter,
    Platform.TWITTER.value: TwitterAdapter,
}
