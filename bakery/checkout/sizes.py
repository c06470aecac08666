"""
Tailles de cookies: source unique de la correspondance taille -> id / colonnes prix et stock.
"""
from enum import Enum
from typing import Optional


class FlavorSize(str, Enum):
    MINI = "Mini"
    MEDIUM = "Medium"
    LARGE = "Large"

    @property
    def size_id(self) -> int:
        return _SIZE_IDS[self]

    @property
    def price_column(self) -> str:
        return f"{self.name.lower()}_price"

    @property
    def stock_column(self) -> str:
        return f"stock_quantity_{self.name.lower()}"

    @classmethod
    def parse(cls, value: Optional[str]) -> "FlavorSize":
        """Large/Medium reconnus sans tenir compte de la casse; tout le reste vaut Mini."""
        v = (value or "").strip().lower()
        if v == "large":
            return cls.LARGE
        if v == "medium":
            return cls.MEDIUM
        return cls.MINI


_SIZE_IDS = {
    FlavorSize.MINI: 1,
    FlavorSize.MEDIUM: 2,
    FlavorSize.LARGE: 3,
}

# Colonnes autorisées dans du SQL construit dynamiquement
PRICE_COLUMNS = frozenset(s.price_column for s in FlavorSize)
STOCK_COLUMNS = frozenset(s.stock_column for s in FlavorSize)
