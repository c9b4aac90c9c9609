import numpy as np
import pandas as pd

from storefront.config import AdminProductSummary, ProductSummary
from storefront.mapping import map_admin_products, map_products, to_admin_summary, to_product_summary


def test_to_product_summary_coerces_fields():
    row = pd.Series(
        {
            "id": "p1",
            "name": " Velvet Sofa ",
            "slug": "velvet-sofa",
            "image": None,
            "price": "4999.00",
            "category": "Living Room",
            "description": float("nan"),
            "rating": np.float64(4.5),
            "review_count": "12",
            "materials": "Velvet",
            "colors": '["Emerald", "Navy"]',
        }
    )

    item = to_product_summary(row)
    assert isinstance(item, ProductSummary)
    assert item.name == "Velvet Sofa"
    assert item.price == 4999.0
    assert item.description is None
    assert item.review_count == 12
    assert item.colors == ["Emerald", "Navy"]


def test_to_admin_summary_keeps_inventory_fields():
    row = pd.Series(
        {
            "id": "p2",
            "name": "Bar Stool",
            "slug": "bar-stool",
            "price": 120,
            "original_price": float("nan"),
            "category": "Seating",
            "stock": np.int64(-3),
            "rating": None,
            "review_count": None,
            "featured": True,
        }
    )

    item = to_admin_summary(row)
    assert isinstance(item, AdminProductSummary)
    assert item.original_price is None
    assert item.stock == 0
    assert item.rating == 0.0
    assert item.featured is True


def test_map_products_preserves_ranked_order_and_skips_unknown():
    df = pd.DataFrame(
        {
            "id": ["a", "b", "c"],
            "name": ["A", "B", "C"],
            "slug": ["a", "b", "c"],
            "price": [1.0, 2.0, 3.0],
            "category": ["X", "X", "X"],
            "colors": [[], ["Red"], []],
        }
    )

    items = map_products(["c", "missing", "a"], df)
    assert [i.id for i in items] == ["c", "a"]

    admin = map_admin_products(["b"], df)
    assert admin[0].stock == 0
    assert admin[0].featured is False
