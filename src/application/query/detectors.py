"""
Metal and intent detection over a closed vocabulary.

Both detectors are ordered rule tables of (compiled pattern, result) pairs so that
precedence is data: detect_intent returns the result of the first matching rule.
"""

import re
from typing import Optional

from src.domain.entities.chat import Intent, MetalSelection
from src.domain.entities.metal_price import METAL_NAMES

METAL_ALIASES: dict[str, str] = {
    "gold": "XAU",
    "silver": "XAG",
    "platinum": "XPT",
    "palladium": "XPD",
    "copper": "XCU",
    "lead": "LEAD",
    "nickel": "NI",
    "zinc": "ZNC",
    "aluminium": "ALU",
    "aluminum": "ALU",
}

METAL_RULES: list[tuple[re.Pattern, str]] = [
    (re.compile(rf"\b{re.escape(code)}\b", re.IGNORECASE), code) for code in METAL_NAMES
] + [
    (re.compile(rf"\b{name}\b", re.IGNORECASE), code) for name, code in METAL_ALIASES.items()
]

INTENT_RULES: list[tuple[re.Pattern, Intent]] = [
    (re.compile(r"\b(?:compar\w*|vs\.?|versus|difference)\b", re.I), Intent.COMPARE),
    (re.compile(r"\b(?:trend\w*|history|historical|chart\w*|movement\w*)\b", re.I), Intent.TREND),
    (re.compile(r"\b(?:cheapest|expensive|highest|lowest|rank\w*)\b", re.I), Intent.RANK),
    (re.compile(r"\b(?:average|avg|mean)\b", re.I), Intent.AVERAGE),
    (re.compile(r"\b(?:carats?|karats?|purity)\b", re.I), Intent.CARATS),
    (re.compile(r"\b(?:available|date\s+range|oldest)\b", re.I), Intent.DATERANGE),
    (re.compile(r"\b(?:help|what\s+can|how\s+to)\b", re.I), Intent.HELP),
]


def detect_metals(text: str) -> MetalSelection:
    """Return every metal code mentioned by code or common name.

    Duplicates collapse; the metal mentioned earliest becomes the primary metal.
    """
    first_seen: dict[str, int] = {}
    for pattern, code in METAL_RULES:
        m = pattern.search(text)
        if m and (code not in first_seen or m.start() < first_seen[code]):
            first_seen[code] = m.start()
    primary: Optional[str] = (
        min(first_seen, key=lambda c: (first_seen[c], c)) if first_seen else None
    )
    return MetalSelection(codes=frozenset(first_seen), primary=primary)


def detect_intent(text: str) -> Intent:
    """Classify *text* into exactly one Intent by fixed keyword precedence."""
    for pattern, intent in INTENT_RULES:
        if pattern.search(text):
            return intent
    return Intent.PRICE
