"""Typed coercion of ETP preference values.

Coercion is permissive: a boolean preference is True only for the literal
"true", and an integer preference that does not parse becomes NaN. Neither
case is an error; is_ambiguous() tells the caller when a value was masked.
"""

import math
from enum import Enum

BOOLEAN_LITERALS = ("true", "false")


class CoercionKind(Enum):
    BOOLEAN = "boolean"
    INTEGER = "integer"


class PreferenceKey(Enum):
    """Known ETP preferences with the coercion applied to their values."""

    TRACKING_PROTECTION = ("privacy.trackingprotection.enabled", CoercionKind.BOOLEAN)
    TRACKING_PROTECTION_PBMODE = ("privacy.trackingprotection.pbmode.enabled", CoercionKind.BOOLEAN)
    REFERER_DEFAULT_POLICY = ("network.http.referer.defaultPolicy", CoercionKind.INTEGER)
    REFERER_DEFAULT_POLICY_PBMODE = ("network.http.referer.defaultPolicy.pbmode", CoercionKind.INTEGER)
    COOKIE_BEHAVIOR = ("network.cookie.cookieBehavior", CoercionKind.INTEGER)
    COOKIE_LIFETIME_POLICY = ("network.cookie.lifetimePolicy", CoercionKind.INTEGER)
    ANNOTATE_CHANNELS_STRICT_LIST = ("privacy.annotate_channels.strict_list.enabled", CoercionKind.BOOLEAN)
    RESTRICT_3RD_PARTY_STORAGE_EXPIRATION = (
        "privacy.restrict3rdpartystorage.expiration",
        CoercionKind.INTEGER,
    )
    FINGERPRINTING = ("privacy.trackingprotection.fingerprinting.enabled", CoercionKind.BOOLEAN)
    CRYPTOMINING = ("privacy.trackingprotection.cryptomining.enabled", CoercionKind.BOOLEAN)

    def __init__(self, pref_name: str, kind: CoercionKind) -> None:
        self.pref_name = pref_name
        self.kind = kind

    @classmethod
    def lookup(cls, name: str) -> "PreferenceKey | None":
        """Known key for a preference name, None for passthrough keys."""
        return _BY_NAME.get(name)


_BY_NAME = {key.pref_name: key for key in PreferenceKey}


def _parse_int(value: str) -> int | float:
    try:
        return int(value.strip(), 10)
    except ValueError:
        return math.nan


def coerce_preference(name: str, value: str) -> bool | int | float | str:
    """Typed value for a preference; unknown keys pass through as strings."""
    key = PreferenceKey.lookup(name)
    if key is None:
        return value
    if key.kind is CoercionKind.BOOLEAN:
        return value == "true"
    return _parse_int(value)


def is_ambiguous(name: str, value: str) -> bool:
    """True when coerce_preference() masked an unrecognised value as False or NaN."""
    key = PreferenceKey.lookup(name)
    if key is None:
        return False
    if key.kind is CoercionKind.BOOLEAN:
        return value not in BOOLEAN_LITERALS
    result = _parse_int(value)
    return isinstance(result, float) and math.isnan(result)
