"""
Website Categorization Engine
Maps a domain to one of the fixed site categories
"""

from enum import Enum
from typing import Optional

from sitepulse.errors import ValidationError


class Category(str, Enum):
    WORK = "Work"
    SOCIAL_MEDIA = "Social Media"
    ENTERTAINMENT = "Entertainment"
    NEWS = "News"
    SHOPPING = "Shopping"
    EDUCATION = "Education"
    HEALTH = "Health"
    FINANCE = "Finance"
    OTHER = "Other"


# ============================================================
# DEFAULT CATEGORIZATION RULES
# ============================================================

# Evaluated top to bottom; the first category with a matching
# substring wins, so the order is part of the scoring contract.
CATEGORY_DOMAINS: tuple[tuple[Category, tuple[str, ...]], ...] = (
    (Category.SOCIAL_MEDIA, (
        "facebook.com",
        "twitter.com",
        "instagram.com",
        "linkedin.com",
        "tiktok.com",
    )),
    (Category.ENTERTAINMENT, (
        "youtube.com",
        "netflix.com",
        "twitch.tv",
        "reddit.com",
    )),
    (Category.NEWS, (
        "cnn.com",
        "bbc.com",
        "nytimes.com",
        "reuters.com",
    )),
    (Category.WORK, (
        "github.com",
        "stackoverflow.com",
        "docs.google.com",
        "slack.com",
    )),
    (Category.SHOPPING, (
        "amazon.com",
        "ebay.com",
        "etsy.com",
        "shopify.com",
    )),
)

# Summary breakdown keys, in display order
CATEGORY_KEYS: tuple[str, ...] = (
    "work",
    "social_media",
    "entertainment",
    "news",
    "shopping",
    "education",
    "health",
    "finance",
    "other",
)

_STRIPPED_KEYS = {key.replace("_", ""): key for key in CATEGORY_KEYS}


# ============================================================
# CATEGORIZATION LOGIC
# ============================================================

def classify(domain: str) -> Category:
    """
    Categorize a domain by substring containment.

    Priority follows CATEGORY_DOMAINS; no match falls back to Other.
    """
    domain_lower = domain.strip().lower()

    for category, patterns in CATEGORY_DOMAINS:
        if any(pattern in domain_lower for pattern in patterns):
            return category

    return Category.OTHER


def category_key(category: str) -> str:
    """
    Breakdown key for a category label.
    "Social Media" -> "social_media"; unknown labels fold into "other".
    """
    stripped = str(category.value if isinstance(category, Category) else category)
    stripped = stripped.lower().replace(" ", "").replace("_", "")
    return _STRIPPED_KEYS.get(stripped, "other")


def parse_category(value: Optional[str]) -> Optional[Category]:
    """Resolve a user supplied label ("social media", "Work", ...) to a Category"""
    if value is None or isinstance(value, Category):
        return value

    wanted = value.strip().lower().replace("_", " ")
    if not wanted:
        return None
    for category in Category:
        if category.value.lower() == wanted:
            return category

    raise ValidationError(f"Unknown category: {value}", field="category")
