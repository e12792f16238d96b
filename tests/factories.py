"""
Test data factories.

Uses factory pattern to generate consistent test data.
"""

from typing import Optional

from models.request import ProductSelection, RequestSubmit


class CatalogFactory:
    """
    Seeds a small catalog through the fake database.

    Usage:
        catalog = CatalogFactory.seed(fake_db)
        catalog["groups"]["Dairy::Cheese"]["id"]
    """

    ROWS = [
        ("Dairy", "Cheese", "Cheddar"),
        ("Dairy", "Cheese", "Brie"),
        ("Dairy", "Milk", "Whole Milk"),
        ("Meat", "Cheese", "Brie"),
    ]

    @classmethod
    def seed(cls, fake_db, rows: Optional[list[tuple[str, str, str]]] = None) -> dict:
        """
        Insert sectors, groups, products and assignments for rows.

        Returns:
            Dict with "sectors", "groups" (keyed "Sector::Group") and
            "products", each mapping to the stored row
        """
        rows = rows or cls.ROWS
        sectors: dict[str, dict] = {}
        groups: dict[str, dict] = {}
        products: dict[str, dict] = {}

        for sector_name, group_name, product_name in rows:
            if sector_name not in sectors:
                sectors[sector_name] = fake_db.seed("sectors", [{"name": sector_name}])[0]
            key = f"{sector_name}::{group_name}"
            if key not in groups:
                groups[key] = fake_db.seed("production_groups", [{
                    "name": group_name,
                    "sector_id": sectors[sector_name]["id"],
                }])[0]
            if product_name not in products:
                products[product_name] = fake_db.seed("products", [{"name": product_name}])[0]
            fake_db.seed("product_assignments", [{
                "sector_id": sectors[sector_name]["id"],
                "production_group_id": groups[key]["id"],
                "product_id": products[product_name]["id"],
            }])

        return {"sectors": sectors, "groups": groups, "products": products}


class RequestFactory:
    """
    Factory for sample request submissions.

    Usage:
        data = RequestFactory.submit(products=[(product_id, group_id)])
        data = RequestFactory.submit(company_name="", products=[...])
    """

    _counter = 0

    @classmethod
    def _next_counter(cls) -> int:
        cls._counter += 1
        return cls._counter

    @classmethod
    def submit(
        cls,
        products: list[tuple[str, str]],
        sector_id: Optional[str] = None,
        **overrides
    ) -> RequestSubmit:
        n = cls._next_counter()
        data = {
            "company_name": f"Company {n}",
            "first_name": "Ayse",
            "last_name": "Yilmaz",
            "email": f"buyer{n}@example.com",
            "phone": "+90 555 000 0000",
            "address": "Main Street 1",
            "province": "Izmir",
            "district": "Konak",
            "sector_id": sector_id,
            "products": [
                ProductSelection(product_id=p, production_group_id=g) for p, g in products
            ],
        }
        data.update(overrides)
        return RequestSubmit(**data)

    @classmethod
    def payload(
        cls,
        products: list[tuple[str, str]],
        sector_id: Optional[str] = None,
        **overrides
    ) -> dict:
        """Same as submit(), as a JSON body."""
        return cls.submit(products, sector_id, **overrides).model_dump()
