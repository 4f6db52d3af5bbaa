"""
Maps model-provided categories onto the Adobe Stock taxonomy.
"""

import logging
from typing import Dict, Optional, Union

from utils.stock_categories import (
    CATEGORY_ALIASES,
    CATEGORY_NAME_TO_ID,
    DEFAULT_CATEGORY_ID,
    MAX_CATEGORY_ID,
    MIN_CATEGORY_ID,
    STOCK_CATEGORIES,
)

logger = logging.getLogger(__name__)


class CategoryService:
    """Validation and fuzzy name matching for category ids"""

    def map_name_to_id(self, name: str) -> int:
        """
        Resolve a category name to its id.

        Precedence: exact official name, alias, partial prefix (official
        name or one of its words starts with the input), substring in either
        direction, then the default category.
        """
        if not isinstance(name, str) or not name.strip():
            logger.warning(f"Invalid category name {name!r}, using default category")
            return DEFAULT_CATEGORY_ID

        normalized = " ".join(name.strip().lower().split())

        if normalized in CATEGORY_NAME_TO_ID:
            return CATEGORY_NAME_TO_ID[normalized]

        if normalized in CATEGORY_ALIASES:
            return CATEGORY_ALIASES[normalized]

        for official, category_id in CATEGORY_NAME_TO_ID.items():
            if official.startswith(normalized):
                return category_id
            if len(normalized) >= 3 and any(w.startswith(normalized) for w in official.split()):
                return category_id

        for official, category_id in CATEGORY_NAME_TO_ID.items():
            if official in normalized or normalized in official:
                return category_id

        logger.warning(f"No category match for {name!r}, using default category {DEFAULT_CATEGORY_ID}")
        return DEFAULT_CATEGORY_ID

    def validate_id(self, category_id: Union[int, str]) -> bool:
        """True for integers (or integer strings) within 1-21"""
        parsed = self._parse_int(category_id)
        return parsed is not None and MIN_CATEGORY_ID <= parsed <= MAX_CATEGORY_ID

    def get_name_by_id(self, category_id: int) -> Optional[str]:
        if not self.validate_id(category_id):
            return None
        return STOCK_CATEGORIES[int(category_id)]

    def get_all_categories(self) -> Dict[int, str]:
        return dict(STOCK_CATEGORIES)

    def to_valid_category_id(self, value: Union[int, float, str]) -> int:
        """
        Coerce whatever the model returned into a valid category id.

        Numbers pass through when in range, numeric strings are parsed, other
        strings go through name matching. Anything else maps to the default.
        """
        if isinstance(value, bool):
            return DEFAULT_CATEGORY_ID

        if isinstance(value, (int, float)):
            if self.validate_id(value):
                return int(value)
            logger.warning(f"Invalid category id {value!r}, using default")
            return DEFAULT_CATEGORY_ID

        if isinstance(value, str):
            parsed = self._parse_int(value)
            if parsed is not None:
                if self.validate_id(parsed):
                    return parsed
                logger.warning(f"Invalid category id {value!r}, using default")
                return DEFAULT_CATEGORY_ID
            return self.map_name_to_id(value)

        return DEFAULT_CATEGORY_ID

    @staticmethod
    def _parse_int(value) -> Optional[int]:
        if isinstance(value, bool):
            return None
        if isinstance(value, int):
            return value
        if isinstance(value, float):
            return int(value) if value.is_integer() else None
        if isinstance(value, str):
            try:
                return int(value.strip())
            except ValueError:
                return None
        return None
