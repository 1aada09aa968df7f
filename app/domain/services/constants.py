
# Retrieval caps
RETRIEVAL_LIMIT = 20    # candidates handed to the reasoning provider (the allowed set)
RETRIEVAL_BREADTH = 50  # repository rows fetched before attribute post-filters

# Output caps applied after validation
MAX_RECOMMENDED = 3
MAX_ADD_ONS = 2

# Tokens shorter than this never become search terms
MIN_TOKEN_LENGTH = 3

STOP_WORDS = frozenset({
    "a", "an", "the", "is", "it", "to", "and", "or", "for", "on", "in", "my",
    "i", "how", "do", "can", "what", "want", "need",
})

# Domain synonyms; expansion is additive, the original token is always kept
SYNONYMS: dict[str, tuple[str, ...]] = {
    "hang": ("hanging", "hooks", "strips", "anchors"),
    "picture": ("hanging", "frame", "hooks"),
    "mirror": ("hanging", "heavy-duty", "anchors"),
    "damage": ("no-damage", "rental-friendly", "command"),
    "rental": ("no-damage", "rental-friendly", "removable"),
    "drill": ("anchors", "drilling-required", "screws"),
    "heavy": ("heavy-duty", "anchors", "toggle"),
    "drywall": ("drywall", "anchors", "monkey"),
    "concrete": ("concrete", "masonry", "tapcon"),
}

# Tags / attributes the constraint filters look at
TAG_DRILLING_REQUIRED = "drilling-required"
TAG_NO_TOOLS = "no-tools"
TAG_NO_DAMAGE = "no-damage"
ATTR_REQUIRES_DRILL = "requires_drill"
ATTR_WEIGHT_CAPACITY = "weight_capacity_lbs"
ATTR_SURFACE_TYPES = "surface_types"

# Store policy defaults for stores without a saved policy
DEFAULT_STORE_POLICIES = {
    "preferNoDamage": False,
    "preferNoTools": False,
    "suggestDrillingFirst": False,
    "safetyDisclaimers": True,
}

SAFETY_KEYWORDS = (
    "electrical",
    "wiring",
    "circuit",
    "breaker",
    "plumbing",
    "gas line",
    "structural",
    "load-bearing",
    "asbestos",
    "lead paint",
    "high voltage",
)

SAFETY_DISCLAIMER = (
    "⚠️ SAFETY NOTE: This task may involve electrical, plumbing, or structural work. \n"
    "For safety, we recommend consulting a licensed professional. \n"
    "Always turn off power/water before working on electrical/plumbing systems."
)

# Intent buckets, first match wins
INTENT_BUCKETS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("hang_item", ("hang", "picture", "frame")),
    ("mount_item", ("mount", "tv", "shelf")),
    ("repair", ("fix", "repair")),
    ("locate_product", ("find", "where")),
)
DEFAULT_INTENT = "general_question"

# Safe fallbacks
FALLBACK_MESSAGES = {
    "no_inventory": (
        "I couldn't find any matching products in our current inventory. Could you tell me more about "
        "what you're looking for, or I can check if we have similar items? Alternatively, you can ask "
        "an associate to verify our stock in this area."
    ),
    "validation_failed": (
        "I'm having trouble confirming product availability right now. Please ask an associate to help "
        "verify our current stock for this request."
    ),
    "system_error": "I'm experiencing a technical issue. Please try again in a moment, or ask an associate for help.",
    "provider_error": (
        "I'm having trouble processing your request right now. Could you please rephrase your question, "
        "or I can help you find a store associate?"
    ),
}
NO_INVENTORY_FOLLOW_UPS = (
    "What specific task are you trying to accomplish?",
    "Do you have any preferences like damage-free or budget limits?",
)

# Analytics display
LOG_MESSAGE_PREVIEW_CHARS = 200
