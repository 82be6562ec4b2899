"""User agent breakdown for reports, via ua-parser."""

from typing import Any, Dict

import ua_parser

UNKNOWN_FAMILY = "Other"


def parse_user_agent(user_agent: str) -> Dict[str, Any]:
    """Break a user agent string into browser, OS and device parts."""
    result = ua_parser.parse(user_agent)
    ua = result.user_agent
    os = result.os
    device = result.device
    return {
        "ua": {
            "family": ua.family if ua else UNKNOWN_FAMILY,
            "major": ua.major if ua else None,
            "minor": ua.minor if ua else None,
            "patch": ua.patch if ua else None,
        },
        "os": {
            "family": os.family if os else UNKNOWN_FAMILY,
            "major": os.major if os else None,
            "minor": os.minor if os else None,
            "patch": os.patch if os else None,
        },
        "device": {
            "family": device.family if device else UNKNOWN_FAMILY,
            "brand": device.brand if device else None,
            "model": device.model if device else None,
        },
        "string": user_agent,
    }
