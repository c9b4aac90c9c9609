from __future__ import annotations
"""
Mapping utilities to convert catalog rows into API responses.

Search ranks lightweight ``CandidateItem``s; the response shapes
(ProductSummary / AdminProductSummary) are filled from the catalog
DataFrame the candidates came from, in ranked order.
"""

from typing import Dict, List, Optional, Sequence

import numpy as np
import pandas as pd
from loguru import logger

from .catalog import parse_colors_field
from .config import AdminProductSummary, ProductSummary


def _coerce_int(val, default: int = 0) -> int:
    try:
        if val is None:
            return default
        if isinstance(val, (int, np.integer)):
            return int(val)
        if isinstance(val, (float, np.floating)):
            return default if np.isnan(val) else int(val)
        s = str(val).strip()
        return int(float(s)) if s else default
    except (TypeError, ValueError):
        return default


def _coerce_float(val, default: float = 0.0) -> float:
    try:
        if val is None:
            return default
        f = float(val)
        return default if np.isnan(f) else f
    except (TypeError, ValueError):
        return default


def _optional_str(val) -> Optional[str]:
    if val is None or (isinstance(val, float) and np.isnan(val)):
        return None
    s = str(val).strip()
    return s or None


def to_product_summary(row: pd.Series) -> ProductSummary:
    return ProductSummary(
        id=str(row["id"]),
        name=str(row.get("name", "") or "").strip(),
        slug=str(row.get("slug", "") or "").strip(),
        image=_optional_str(row.get("image")),
        price=max(0.0, _coerce_float(row.get("price"))),
        category=str(row.get("category", "") or "").strip(),
        description=_optional_str(row.get("description")),
        rating=_coerce_float(row.get("rating")),
        review_count=max(0, _coerce_int(row.get("review_count"))),
        materials=_optional_str(row.get("materials")),
        colors=parse_colors_field(row.get("colors")),
    )


def to_admin_summary(row: pd.Series) -> AdminProductSummary:
    original = row.get("original_price")
    return AdminProductSummary(
        id=str(row["id"]),
        name=str(row.get("name", "") or "").strip(),
        slug=str(row.get("slug", "") or "").strip(),
        image=_optional_str(row.get("image")),
        price=max(0.0, _coerce_float(row.get("price"))),
        original_price=None if original is None or pd.isna(original) else float(original),
        category=str(row.get("category", "") or "").strip(),
        stock=max(0, _coerce_int(row.get("stock"))),
        rating=_coerce_float(row.get("rating")),
        review_count=max(0, _coerce_int(row.get("review_count"))),
        featured=bool(row.get("featured", False)),
    )


def _rows_by_id(ids: Sequence[str], catalog_df: pd.DataFrame) -> List[pd.Series]:
    if catalog_df is None:
        raise ValueError("catalog_df must be provided")
    if "id" not in catalog_df.columns:
        raise KeyError("Catalog DataFrame must contain 'id'.")

    id_to_row: Dict[str, pd.Series] = {str(row["id"]): row for _, row in catalog_df.iterrows()}
    rows: List[pd.Series] = []
    for pid in ids:
        row = id_to_row.get(str(pid))
        if row is None:
            logger.warning("Product id {} not found in catalog DataFrame; skipping", pid)
            continue
        rows.append(row)
    return rows


def map_products(ids: Sequence[str], catalog_df: pd.DataFrame) -> List[ProductSummary]:
    """Build storefront summaries for ``ids``, preserving their order."""
    return [to_product_summary(row) for row in _rows_by_id(ids, catalog_df)]


def map_admin_products(ids: Sequence[str], catalog_df: pd.DataFrame) -> List[AdminProductSummary]:
    return [to_admin_summary(row) for row in _rows_by_id(ids, catalog_df)]
