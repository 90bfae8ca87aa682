#!/usr/bin/env python3
"""
Seed a DuckDB catalog with demo campus-marketplace products.

Products are written without embeddings; run ``catalog-search backfill``
afterwards to embed them.
"""

import os
import sys

from catalog_search.config import resolve_db_path
from catalog_search.search.filters import CATEGORY_MAP
from catalog_search.storage import DuckDBCatalog, ProductRecord

DEFAULT_DIM = 768

# name, description, price, stock, condition
PRODUCTS = {
    "Textbooks": [
        ("Biology Textbook", "Campbell Biology, 11th edition, light highlighting", 45.0, 2, "Good"),
        ("Calculus Early Transcendentals", "Stewart, includes solutions manual", 60.0, 1, "Like New"),
    ],
    "Study Guides": [
        ("Advanced Study Guide", "Exam prep for organic chemistry finals", 12.0, 4, "New"),
        ("MCAT Review Book", "Full-length practice tests and summaries", 30.0, 1, "Good"),
    ],
    "Novels": [
        ("The Great Gatsby", "Paperback, assigned reading for English 101", 5.0, 3, "Fair"),
    ],
    "Laptops": [
        ("Used Laptop", "13-inch ultrabook, 8GB RAM, charger included", 350.0, 1, "Good"),
    ],
    "Chargers": [
        ("USB-C Charger", "65W fast charger for laptops and phones", 20.0, 6, "New"),
    ],
    "Notebooks": [
        ("Spiral Notebook Pack", "Five college-ruled notebooks", 8.0, 10, "New"),
    ],
    "Pens & Pencils": [
        ("Gel Pen Set", "Twelve assorted colours, fine tip", 6.5, 15, "New"),
    ],
    "Snacks": [
        ("Granola Bars", "Box of 12 oat and honey bars", 7.0, 8, "New"),
    ],
    "Gym Equipment": [
        ("Adjustable Dumbbells", "Pair, 5 to 25 lb", 80.0, 1, "Good"),
    ],
    "Shirts": [
        ("University Hoodie", "Grey, size M, worn twice", 18.0, 1, "Like New"),
    ],
}


def build_products() -> list[ProductRecord]:
    known = {sub for subs in CATEGORY_MAP.values() for sub in subs}
    products = []
    for category, rows in PRODUCTS.items():
        if category not in known:
            raise ValueError(f"unknown category: {category}")
        for index, (name, description, price, stock, condition) in enumerate(rows):
            slug = category.lower().replace(" & ", "-").replace(" ", "-")
            products.append(
                ProductRecord(
                    id=f"{slug}-{index + 1}",
                    name=name,
                    description=description,
                    price=price,
                    stock=stock,
                    status="active",
                    category=category,
                    seller_id="demo_seller",
                    condition=condition,
                )
            )
    return products


def main():
    db_path = resolve_db_path(sys.argv[1] if len(sys.argv) > 1 else None)
    dim = int(os.getenv("CATALOG_SEARCH_EMBEDDING_DIM", str(DEFAULT_DIM)))
    catalog = DuckDBCatalog(db_path, dim=dim)
    try:
        written = catalog.upsert_products(build_products())
    finally:
        catalog.close()

    print(f"Seeded {written} products into: {db_path}")
    print("\nNext step: catalog-search backfill --db-path", db_path)


if __name__ == "__main__":
    main()
