"""
Eligibility and category filtering for catalog queries.

Main categories expand to their subcategories, so a query scoped to "Books"
also matches products filed under "Textbooks" or "Study Guides".
"""

from __future__ import annotations

from dataclasses import dataclass

from ..storage.base import ACTIVE_STATUS, ProductRecord


CATEGORY_MAP: dict[str, tuple[str, ...]] = {
    "School Supplies": ("Notebooks", "Pens & Pencils", "Paper", "Binders", "Other Supplies"),
    "Electronics": ("Laptops", "Phones", "Accessories", "Chargers", "Other Electronics"),
    "Books": ("Textbooks", "Novels", "Study Guides", "Reference", "Other Books"),
    "Clothing": ("Shirts", "Pants", "Shoes", "Other Clothing"),
    "Food & Beverages": ("Snacks", "Drinks", "Meal Prep", "Other Food"),
    "Sports Equipment": ("Gym Equipment", "Sports Gear", "Outdoor", "Other Sports"),
    "Others": ("Others",),
}


def is_main_category(name: str) -> bool:
    return name in CATEGORY_MAP


def main_category_for(subcategory: str) -> str | None:
    for main, subcategories in CATEGORY_MAP.items():
        if subcategory in subcategories:
            return main
    return None


def expand_category(category: str | None) -> tuple[str, ...] | None:
    """Return the category values a filter should accept, or None for any."""
    if category is None or not category.strip():
        return None
    name = category.strip()
    if is_main_category(name):
        # Products may be filed under the main category itself as well.
        return (name, *CATEGORY_MAP[name])
    return (name,)


@dataclass(frozen=True)
class CatalogFilter:
    """Eligibility predicate: active, in stock, optionally category-scoped."""

    categories: tuple[str, ...] | None = None

    @classmethod
    def from_category(cls, category: str | None) -> "CatalogFilter":
        return cls(categories=expand_category(category))

    def matches(self, product: ProductRecord) -> bool:
        if product.status != ACTIVE_STATUS or product.stock <= 0:
            return False
        if self.categories is not None and product.category not in self.categories:
            return False
        return True

    def describe(self) -> str:
        if self.categories is None:
            return "eligible"
        return "eligible, category in [" + ", ".join(self.categories) + "]"
