#!/usr/bin/env python
"""Seed a running store service and walk through the category workflows."""
import logging

from rich.logging import RichHandler

from sdk.catalog import CatalogClient
from sdk.composer import CategoryComposer
from sdk.config import settings


def main():
    logging.basicConfig(level=settings.LOG_LEVEL, format="%(message)s", handlers=[RichHandler(show_path=False)])
    c = CatalogClient.from_settings(settings)

    # -----------------------------
    # Reset everything for demo
    # -----------------------------
    print("Resetting store...")
    c.reset()

    # -----------------------------
    # Seed products
    # -----------------------------
    print("\nCreating products...")
    products = {}
    for name, price in [
        ("Cambridge Divan Bed", 599), ("Oxford Ottoman Bed", 699),
        ("Westminster Mattress", 449), ("Memory Foam Mattress", 549),
        ("Storage Divan Set", 649),
    ]:
        products[name] = c.create_product({"name": name, "price": price})["id"]
    print(products)

    composer = CategoryComposer(c, confirm=lambda question: True)
    composer.load()

    # -----------------------------
    # Category + subcategory with products
    # -----------------------------
    print("\nCreating 'Divan Beds'...")
    composer.open_category().name = "Divan Beds"
    composer.save_category()
    divans = composer.snapshot.categories[0]

    print("\nCreating 'Storage Divans' with two products...")
    form = composer.open_subcategory(divans.id)
    form.name = "Storage Divans"
    form.description = "Divans with built-in storage drawers"
    for name in ("Cambridge Divan Bed", "Storage Divan Set"):
        composer.toggle_product(products[name])
    composer.save_subcategory()

    # -----------------------------
    # Filters
    # -----------------------------
    print("\nAssigning a new 'Bed Size' filter to the whole category...")
    composer.open_filter_assignment(divans.id)
    composer.quick_create_filter_type("Bed Size")
    composer.save_filter_assignment()

    # -----------------------------
    # Derived views
    # -----------------------------
    snap = composer.snapshot
    for category in snap.categories:
        print(f"\n{category.name}: {len(category.subcategories)} subcategories, "
              f"{snap.total_products(category)} products")
        for cf in snap.filters_for_category(category):
            print(f"  filter: {snap.filter_type_name(cf.filter_type)}")
    print("\nAssignments:", snap.resolved_filters())

    # -----------------------------
    # Delete (cascades in the store)
    # -----------------------------
    print("\nDeleting 'Divan Beds'...")
    composer.delete_category(divans.id)
    print("Categories left:", [cat.name for cat in composer.snapshot.categories])


if __name__ == "__main__":
    main()
