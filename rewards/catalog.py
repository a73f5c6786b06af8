"""
Unlock catalog.

The catalog is static for the lifetime of the app: it is read once at
startup (from config.DEFAULT_UNLOCKS, or a JSON file named by the
UNLOCKS_FILE setting) and only queried afterwards.
"""

import json
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

import config
from core.errors import ConfigurationError

logger = logging.getLogger(__name__)


class UnlockCategory(Enum):
    SKIN = config.CATEGORY_SKIN
    BACKGROUND = config.CATEGORY_BACKGROUND
    ACCESSORY = config.CATEGORY_ACCESSORY
    SPECIAL = config.CATEGORY_SPECIAL


@dataclass(frozen=True)
class UnlockDefinition:
    id: str
    display_name: str
    cost_points: int
    category: UnlockCategory = UnlockCategory.SKIN
    description: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UnlockDefinition":
        """
        Build a definition from a catalog entry.

        Missing ids are derived from the display name, the same way
        asset names become ids ("Tiny Hat" -> "tiny_hat").

        Raises:
            ConfigurationError: If the entry is malformed.
        """
        if not isinstance(data, dict):
            raise ConfigurationError(f"Unlock entry must be an object, got {data!r}")
        try:
            display_name = str(data.get("display_name") or data["id"])
            item_id = str(data.get("id") or display_name.lower().replace(" ", "_"))
            category = UnlockCategory(str(data.get("category", config.CATEGORY_SKIN)).lower())
            cost = data.get("cost_points", 0)
        except (KeyError, ValueError) as e:
            raise ConfigurationError(f"Invalid unlock entry {data!r}: {e}") from e

        if isinstance(cost, bool) or not isinstance(cost, int) or cost < 0:
            raise ConfigurationError(f"Unlock {item_id!r} has invalid cost {cost!r}")

        return cls(
            id=item_id,
            display_name=display_name,
            cost_points=cost,
            category=category,
            description=str(data.get("description", "")),
        )


class UnlockCatalog:
    """Immutable, ordered collection of UnlockDefinition."""

    def __init__(self, definitions: Iterable[UnlockDefinition]) -> None:
        self._definitions: tuple = tuple(definitions)
        self._by_id: Dict[str, UnlockDefinition] = {}

        for definition in self._definitions:
            if definition.id in self._by_id:
                raise ConfigurationError(f"Duplicate unlock id: {definition.id}")
            if definition.cost_points < 0:
                raise ConfigurationError(f"Unlock {definition.id!r} has negative cost")
            self._by_id[definition.id] = definition

    def __len__(self) -> int:
        return len(self._definitions)

    def __iter__(self):
        return iter(self._definitions)

    def get(self, item_id: str) -> Optional[UnlockDefinition]:
        return self._by_id.get(item_id)

    def all(self) -> List[UnlockDefinition]:
        return list(self._definitions)

    def unlocked(self, unlocked_ids: Iterable[str]) -> List[UnlockDefinition]:
        owned = set(unlocked_ids)
        return [d for d in self._definitions if d.id in owned]

    def locked(self, unlocked_ids: Iterable[str]) -> List[UnlockDefinition]:
        """Items not yet owned, cheapest first (stable for equal costs)."""
        owned = set(unlocked_ids)
        return sorted(
            (d for d in self._definitions if d.id not in owned),
            key=lambda d: d.cost_points,
        )

    def next_affordable(self, points: int, unlocked_ids: Iterable[str]) -> Optional[UnlockDefinition]:
        """The most expensive locked item the balance can buy, if any."""
        affordable = [d for d in self.locked(unlocked_ids) if d.cost_points <= points]
        return affordable[-1] if affordable else None


def load_catalog(path: Optional[Union[str, Path]] = None) -> UnlockCatalog:
    """
    Load the unlock catalog.

    Args:
        path: JSON file holding a list of unlock entries. Defaults to
              config.UNLOCKS_FILE; the built-in catalog is used when no
              file is configured or it cannot be read.

    Raises:
        ConfigurationError: If an entry is invalid or ids collide.
    """
    path = path or config.UNLOCKS_FILE
    entries = config.DEFAULT_UNLOCKS

    if path:
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            if isinstance(data, list):
                entries = data
            else:
                logger.warning(f"Unlock file {path} is not a list, using built-in catalog")
        except (json.JSONDecodeError, IOError, OSError) as e:
            logger.warning(f"Failed to load unlock file {path}: {e}. Using built-in catalog.")

    catalog = UnlockCatalog(UnlockDefinition.from_dict(entry) for entry in entries)
    logger.debug(f"Loaded {len(catalog)} unlocks")
    return catalog
