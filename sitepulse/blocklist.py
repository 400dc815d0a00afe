"""
Blocked site lists
Per-user list of domains the extension blocks. Blocked *attempts* are
recorded on the tracking day; this list is what they refer to.
"""

import logging
import re
from datetime import datetime
from typing import Callable, Optional, Union

from sitepulse.categorization import Category, parse_category
from sitepulse.errors import ValidationError
from sitepulse.locks import KeyedLock
from sitepulse.schemas import BlockedSite, BlockedSiteItem
from sitepulse.store import BlockedSiteStore
from sitepulse.tracking import utc_now

logger = logging.getLogger(__name__)

BLOCKABLE_CATEGORIES = (
    Category.SOCIAL_MEDIA,
    Category.ENTERTAINMENT,
    Category.NEWS,
    Category.SHOPPING,
    Category.OTHER,
)

_SCHEME = re.compile(r"^https?://")
_WWW = re.compile(r"^www\.")


def clean_blocked_domain(domain: Optional[str]) -> str:
    """Lower-case, without scheme or a leading www."""
    cleaned = _WWW.sub("", _SCHEME.sub("", (domain or "").strip().lower()))
    if not cleaned:
        raise ValidationError("Domain is required", field="domain")
    return cleaned


def blocked_category(value: Optional[str]) -> Category:
    category = parse_category(value) or Category.OTHER
    if category not in BLOCKABLE_CATEGORIES:
        raise ValidationError(f"Category cannot be blocked: {category.value}", field="category")
    return category


class BlocklistService:
    """Read-modify-write of a user's blocked site list, one writer per user"""

    def __init__(self, store: BlockedSiteStore, clock: Callable[[], datetime] = utc_now):
        self.store = store
        self.clock = clock
        self._locks = KeyedLock()

    async def list_sites(self, user_id: str) -> list[BlockedSite]:
        return await self.store.get(user_id)

    async def add_site(self, user_id: str, domain: str, category: Optional[str] = None) -> BlockedSite:
        site = BlockedSite(
            domain=clean_blocked_domain(domain),
            category=blocked_category(category),
            added_at=self.clock(),
        )
        async with self._locks.hold(user_id):
            sites = await self.store.get(user_id)
            if any(existing.domain == site.domain for existing in sites):
                raise ValidationError("Site is already blocked", field="domain")
            await self.store.set(user_id, sites + [site])

        logger.info("User %s blocked %s", user_id, site.domain)
        return site

    async def remove_site(self, user_id: str, domain: str) -> bool:
        target = clean_blocked_domain(domain)
        async with self._locks.hold(user_id):
            sites = await self.store.get(user_id)
            kept = [site for site in sites if site.domain != target]
            if len(kept) == len(sites):
                return False
            await self.store.set(user_id, kept)
        return True

    async def replace_sites(
        self,
        user_id: str,
        items: list[Union[str, BlockedSiteItem]],
    ) -> list[BlockedSite]:
        """Replace the whole list; a repeated domain keeps its first entry"""
        now = self.clock()
        sites: dict[str, BlockedSite] = {}
        for item in items:
            if isinstance(item, str):
                item = BlockedSiteItem(domain=item)
            domain = clean_blocked_domain(item.domain)
            sites.setdefault(domain, BlockedSite(
                domain=domain,
                category=blocked_category(item.category),
                added_at=item.added_at or now,
            ))

        async with self._locks.hold(user_id):
            await self.store.set(user_id, list(sites.values()))
        return list(sites.values())
