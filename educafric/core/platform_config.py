"""
Platform-wide notification configuration.

Built once from Settings at start-up and never mutated afterwards.
"""
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, List, Mapping

from educafric.core.config import Settings, settings as default_settings

EVENT_TYPES = ("attendance", "grades", "payments", "geolocation", "onlineClasses", "subscriptions")
CHANNELS = ("email", "whatsapp", "pwa", "sms")
LANGUAGES = ("fr", "en")


@dataclass(frozen=True)
class PlatformNotificationConfig:
    auto_notify: Mapping[str, bool]
    channels: Mapping[str, bool]
    default_language: str = "fr"
    timezone: str = "Africa/Douala"
    support_phone: str = ""
    support_email: str = ""
    platform_url: str = "https://www.educafric.com"
    currency: str = "XAF"
    platform_name: str = field(default="EDUCAFRIC")

    @classmethod
    def from_settings(cls, s: Settings = None) -> "PlatformNotificationConfig":
        s = s or default_settings
        language = s.DEFAULT_LANGUAGE if s.DEFAULT_LANGUAGE in LANGUAGES else "fr"
        return cls(
            auto_notify=MappingProxyType({
                "attendance": s.AUTO_NOTIFY_ATTENDANCE,
                "grades": s.AUTO_NOTIFY_GRADES,
                "payments": s.AUTO_NOTIFY_PAYMENTS,
                "geolocation": s.AUTO_NOTIFY_GEOLOCATION,
                "onlineClasses": s.AUTO_NOTIFY_ONLINE_CLASSES,
                "subscriptions": s.AUTO_NOTIFY_SUBSCRIPTIONS,
            }),
            channels=MappingProxyType({
                "email": s.CHANNEL_EMAIL_ENABLED,
                "whatsapp": s.CHANNEL_WHATSAPP_ENABLED,
                "pwa": s.CHANNEL_PWA_ENABLED,
                # SMS delivery was removed from the platform
                "sms": False,
            }),
            default_language=language,
            timezone=s.TIMEZONE,
            support_phone=s.SUPPORT_PHONE,
            support_email=s.SUPPORT_EMAIL,
            platform_url=s.PLATFORM_URL,
            currency=s.CURRENCY,
        )

    def should_auto_notify(self, event_type: str) -> bool:
        return bool(self.auto_notify.get(event_type, False))

    def is_channel_enabled(self, channel: str) -> bool:
        return bool(self.channels.get(channel, False))

    def active_channels(self) -> List[str]:
        return [c for c in ("email", "whatsapp", "pwa") if self.is_channel_enabled(c)]

    def auto_notify_settings(self) -> Dict[str, bool]:
        return {event_type: self.should_auto_notify(event_type) for event_type in EVENT_TYPES}

    def resolve_language(self, language: str = None) -> str:
        return language if language in LANGUAGES else self.default_language

    def to_dict(self) -> dict:
        return {
            "platform": self.platform_name,
            "autoNotify": self.auto_notify_settings(),
            "channels": dict(self.channels),
            "activeChannels": self.active_channels(),
            "defaultLanguage": self.default_language,
            "timezone": self.timezone,
            "supportPhone": self.support_phone,
            "supportEmail": self.support_email,
            "currency": self.currency,
        }
