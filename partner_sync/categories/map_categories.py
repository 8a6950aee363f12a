"""
Partner Sync - Category Mapping
===============================
Maps a Partner's free-text service category names to catalog ids.

Matching is exact and case-sensitive. Names with no catalog entry are
dropped without error. The catalog is queried on every call because it can
change between runs. A catalog failure is downgraded to "no categories
resolved" so that it can never erase or block a profile sync.
"""

import logging
from typing import Dict, Iterable, List, Optional, Sequence

from partner_sync.errors import CategoryLookupFailure
from partner_sync.models import ServiceCategory
from partner_sync.repositories.base import CategoryRepository

logger = logging.getLogger(__name__)


def distinct_names(names: Optional[Iterable[str]]) -> List[str]:
    """Non-empty names in first-seen order, duplicates removed."""
    seen: Dict[str, None] = {}
    for name in names or []:
        if isinstance(name, str) and name:
            seen.setdefault(name, None)
    return list(seen)


def unmatched_names(names: Sequence[str], categories: Sequence[ServiceCategory]) -> List[str]:
    found = {category.name for category in categories}
    return [name for name in names if name not in found]


class CategoryMapper:
    def __init__(self, categories: CategoryRepository):
        self.categories = categories

    def map(self, names: Optional[Iterable[str]]) -> List[str]:
        """
        Resolve category names to ids.

        Returns:
            Ids ordered by the position of their name in `names`
        """
        wanted = distinct_names(names)
        if not wanted:
            return []

        try:
            found = self._find(wanted)
        except CategoryLookupFailure as exc:
            logger.warning(f"  {exc} - treating as zero categories resolved")
            return []

        by_name: Dict[str, List[str]] = {}
        for category in found:
            # Guard against stores that compare names case-insensitively
            if category.name in wanted:
                by_name.setdefault(category.name, []).append(category.id)

        missing = unmatched_names(wanted, found)
        if missing:
            logger.debug(f"  Unmatched category names dropped: {missing}")

        ids: List[str] = []
        for name in wanted:
            for category_id in by_name.get(name, []):
                if category_id not in ids:
                    ids.append(category_id)
        return ids

    def _find(self, names: List[str]) -> List[ServiceCategory]:
        try:
            return self.categories.find_by_names(names)
        except Exception as exc:
            raise CategoryLookupFailure(f"Category catalog lookup failed: {exc}") from exc
