from partner_sync.categories.map_categories import (
    CategoryMapper,
    distinct_names,
    unmatched_names,
)

__all__ = [
    'CategoryMapper',
    'distinct_names',
    'unmatched_names',
]
