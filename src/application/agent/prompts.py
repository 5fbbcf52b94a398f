"""
Grounding contract for the generative backend, plus the fixed informational
snippets used by the carats / help / daterange intents.

Keeping the prompt in the application layer keeps it next to the rules it
encodes, independent of any backend SDK.
"""

from src.domain.entities.metal_price import GOLD_PURITY

SYSTEM_PROMPT = """You are Auric AI, the concise assistant for an Indian metal price tracker.

STRICT RULES:
1. ALL prices are Indian Rupees (₹). NEVER use $ or USD.
2. ONLY use figures from CONTEXT DATA or SUGGESTED ANSWER. NEVER invent, estimate or recompute prices, changes or percentages.
3. Copy exact ₹ amounts and percentages, do NOT round or change any number.
4. Keep responses short (2-4 sentences). State the facts, then stop.
5. Always name the date the data is from when quoting a price.
6. For gold, always include the carat (24K, 22K, etc).
7. Use "per gram" format.
8. If a SUGGESTED ANSWER is provided, use it as your base and keep all numbers identical.
9. If SITE INFO is provided, answer the question using that information.
10. If the question is unrelated to metals or this tracker, say: "I can only help with metal prices."
"""

GOLD_PURITY_INFO = """Gold purity explained:
24K = 99.9% pure gold (most expensive, used for coins, bars and investment)
22K = 91.6% pure gold (most common for Indian jewellery)
18K = 75.0% pure gold (designer and international jewellery)
Higher carat means purer and more expensive per gram.
Carat prices are derived from the 24K price with multipliers """ + ", ".join(
    f"{carat}K={multiplier}" for carat, multiplier in GOLD_PURITY.items()
) + "."

TRACKED_METALS_INFO = """Tracked metals:
Gold (XAU) in 24K, 22K and 18K, priced per gram and per 8 grams.
Silver (XAG), Platinum (XPT), Palladium (XPD), Copper (XCU), Lead (LEAD),
Nickel (NI), Zinc (ZNC) and Aluminium (ALU), priced per gram and per kilogram."""

CAPABILITIES_INFO = """I can help with:
- Current prices, prices on a specific date, yesterday's prices
- Date ranges, last N days, weekly and monthly trends
- Comparing metals and ranking them from cheapest to most expensive
- All gold carats and average prices
I cannot give investment advice, predict prices, or answer non-metal questions."""

NO_DATA_AT_ALL = "Sorry, no price data is currently available in our database."

FALLBACK_PREFIX = "Here's the data I found:"

UNAVAILABLE_ANSWER = (
    "Sorry, I'm unable to process your request right now. Please try again in a moment."
)


def build_evidence_text(site_info: str | None, context: str, suggested_answer: str | None) -> str:
    """Assemble the evidence section sent along with the user's question."""
    parts: list[str] = []
    if site_info:
        parts.append(f"SITE INFO:\n{site_info}")
    if context:
        parts.append(f"CONTEXT DATA:\n{context}")
    if suggested_answer:
        parts.append(f"SUGGESTED ANSWER:\n{suggested_answer}")
    return "\n\n".join(parts)
