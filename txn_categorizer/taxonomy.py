"""Persisted taxonomy (the ordered list of category names shown to users)."""

from typing import Dict, List

from sqlalchemy.orm import Session

from .database import AppSetting

DEFAULT_TAXONOMY: List[str] = [
    "Groceries",
    "Dining",
    "Fuel",
    "Shopping",
    "Bills",
    "Entertainment",
    "Transport",
    "Healthcare",
    "Other",
]

TAXONOMY_KEY = "taxonomy"


class TaxonomyStore:
    """Reads and writes the taxonomy through a key/value row in ``app_settings``."""

    def __init__(self, db: Session, key: str = TAXONOMY_KEY):
        self.db = db
        self.key = key

    def get(self) -> Dict[str, List[str]]:
        row = self.db.get(AppSetting, self.key)
        if row is None:
            return {"categories": list(DEFAULT_TAXONOMY)}
        return {"categories": list(row.value.get("categories", []))}

    def set(self, categories: List[str]) -> Dict[str, List[str]]:
        value = {"categories": list(categories)}
        row = self.db.get(AppSetting, self.key)
        if row is None:
            self.db.add(AppSetting(key=self.key, value=value))
        else:
            row.value = value
        self.db.commit()
        return value
