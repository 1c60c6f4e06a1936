"""
Enumeration types used across the application.
"""

from enum import Enum


class Platform(str, Enum):
    """Third-party platforms that push webhooks to us"""
    FACEBOOK = "facebook"
    INSTAGRAM = "instagram"
    WHATSAPP = "whatsapp"
    TWITTER = "twitter"


class Permission(str, Enum):
    """Workspace permissions relevant to webhook management"""
    WEBHOOKS_MANAGE = "settings.webhooks.manage"


class DeliveryStatusFilter(str, Enum):
    """Filter for the deliveries listing"""
    SUCCEEDED = "succeeded"
    FAILED = "failed"
