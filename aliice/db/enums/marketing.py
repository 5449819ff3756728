"""Marketing attribution enums."""

from enum import Enum


class MarketingChannel(str, Enum):
    """Acquisition channels for campaigns, spend and leads."""

    GOOGLE_ADS = "google_ads"
    META_ADS = "meta_ads"
    LINKEDIN_ADS = "linkedin_ads"
    TIKTOK_ADS = "tiktok_ads"
    TWITTER_ADS = "twitter_ads"
    MICROSOFT_ADS = "microsoft_ads"
    ORGANIC_SEARCH = "organic_search"
    ORGANIC_SOCIAL = "organic_social"
    REFERRAL = "referral"
    DIRECT = "direct"
    EMAIL = "email"
    OTHER = "other"

    @classmethod
    def has_value(cls, value: str) -> bool:
        return value in cls._value2member_map_


class DealStatus(str, Enum):
    OPEN = "open"
    WON = "won"
    LOST = "lost"


class ImportSource(str, Enum):
    MANUAL = "manual"
    CSV = "csv"
    XLSX = "xlsx"
