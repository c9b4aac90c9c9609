from __future__ import annotations

import argparse
import json
import re
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd
from loguru import logger
from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from . import config
from .db import ProductRow, create_database
from .normalize import basic_clean
from .search import CandidateItem


CATALOG_COLUMNS = [
    "id",
    "name",
    "slug",
    "image",
    "price",
    "original_price",
    "category",
    "description",
    "materials",
    "colors",
    "rating",
    "review_count",
    "stock",
    "featured",
    "created_at",
]


# ---------------------------
# Column detection / standardization
# ---------------------------

# seed files come from the storefront's JS tooling (camelCase) or from
# spreadsheets, so accept a few variants per field
COLUMN_CANDIDATES: Dict[str, List[str]] = {
    "name": ["name", "Name", "title", "Product Name"],
    "slug": ["slug", "Slug", "handle"],
    "image": ["image", "Image", "imageUrl", "image_url"],
    "price": ["price", "Price"],
    "original_price": ["originalPrice", "original_price", "mrp", "Original Price"],
    "category": ["category", "Category"],
    "description": ["description", "Description"],
    "materials": ["materials", "Materials", "material"],
    "colors": ["colors", "Colors", "colours", "color"],
    "rating": ["rating", "Rating"],
    "review_count": ["reviewCount", "review_count", "reviews", "Reviews"],
    "stock": ["stock", "Stock", "inventory", "quantity"],
    "featured": ["featured", "Featured"],
}


def _standardize_columns(df: pd.DataFrame) -> pd.DataFrame:
    """
    Rename columns from a raw seed file to the canonical product schema.
    """
    col_map: Dict[str, str] = {}
    lower_to_original = {c.lower(): c for c in df.columns}

    for canon, candidates in COLUMN_CANDIDATES.items():
        for candidate in candidates:
            if candidate in df.columns:
                col_map[candidate] = canon
                break
            cand_lower = candidate.lower()
            if cand_lower in lower_to_original:
                col_map[lower_to_original[cand_lower]] = canon
                break

    logger.info("Standardizing columns with map: {}", col_map)
    df_std = df.rename(columns=col_map)

    missing = [c for c in ["name", "category", "price"] if c not in df_std.columns]
    if missing:
        logger.warning("Raw catalog is missing required columns: {}", missing)
    return df_std


# ---------------------------
# Field parsing helpers
# ---------------------------

def slugify(text: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", (text or "").lower())
    return slug.strip("-")


def parse_colors_field(value) -> List[str]:
    """
    Colors arrive as a list, a JSON array string, or "Oak, Walnut"-style text.
    Returns trimmed, de-duplicated names in first-seen order.
    """
    if value is None:
        return []
    if isinstance(value, float) and pd.isna(value):
        return []

    if isinstance(value, (list, tuple)):
        tokens = [str(v) for v in value]
    elif hasattr(value, "tolist"):
        tokens = [str(v) for v in value.tolist()]
    else:
        text = str(value).strip()
        tokens = []
        if text.startswith("["):
            try:
                tokens = [str(v) for v in json.loads(text)]
            except ValueError:
                tokens = []
        if not tokens:
            tokens = re.split(r"[;,|/]+", text.strip("[]"))

    colors: List[str] = []
    for tok in tokens:
        c = tok.strip().strip("'\"").strip()
        if c and c not in colors:
            colors.append(c)
    return colors


def _to_number(series: pd.Series, default: float = 0.0) -> pd.Series:
    return pd.to_numeric(series, errors="coerce").fillna(default)


def _clean_optional(value) -> Optional[str]:
    if not isinstance(value, str):
        return None
    return basic_clean(value) or None


def _to_flag(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"yes", "y", "true", "1"}
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return False
    return bool(value)


# ---------------------------
# Catalog normalization
# ---------------------------

def normalize_catalog_df(df_raw: pd.DataFrame) -> pd.DataFrame:
    """
    Turn a raw seed frame into the canonical product schema:

    - name, category (str, cleaned; rows missing either are dropped)
    - slug (str, derived from name when absent, unique)
    - price, original_price, rating (float); review_count, stock (int >= 0)
    - description, materials (str or None), colors (List[str]), featured (bool)
    """
    logger.info("Normalizing catalog dataframe with {} raw rows", len(df_raw))
    df = _standardize_columns(df_raw.copy())

    for col in ["name", "category"]:
        if col not in df.columns:
            df[col] = ""
        df[col] = df[col].fillna("").astype(str).apply(basic_clean)
    df = df[(df["name"] != "") & (df["category"] != "")].copy()

    if "slug" not in df.columns:
        df["slug"] = ""
    df["slug"] = df["slug"].fillna("").astype(str).str.strip()
    no_slug = df["slug"] == ""
    df.loc[no_slug, "slug"] = df.loc[no_slug, "name"].map(slugify)
    df = df.drop_duplicates(subset=["slug"]).reset_index(drop=True)

    for col in ["description", "materials", "image"]:
        if col not in df.columns:
            df[col] = None
        df[col] = df[col].map(_clean_optional)

    df["price"] = _to_number(df.get("price", pd.Series(0.0, index=df.index))).clip(lower=0)
    if "original_price" in df.columns:
        df["original_price"] = pd.to_numeric(df["original_price"], errors="coerce")
    else:
        df["original_price"] = float("nan")
    df["rating"] = _to_number(df.get("rating", pd.Series(0.0, index=df.index)))
    for col in ["review_count", "stock"]:
        raw = df[col] if col in df.columns else pd.Series(0, index=df.index)
        df[col] = _to_number(raw).clip(lower=0).astype(int)

    if "colors" in df.columns:
        df["colors"] = df["colors"].apply(parse_colors_field)
    else:
        df["colors"] = df["name"].map(lambda _: [])
    df["featured"] = df["featured"].apply(_to_flag) if "featured" in df.columns else False

    cols = [c for c in CATALOG_COLUMNS if c not in {"id", "created_at"}]
    df_out = df[cols]
    logger.info("Catalog normalization complete. Final rows: {}", len(df_out))
    return df_out


# ---------------------------
# IO helpers
# ---------------------------

def load_raw_catalog(path: Path) -> pd.DataFrame:
    """Load a seed file (.json array of products, or .csv)."""
    logger.info("Loading raw catalog from {}", path)
    if path.suffix.lower() == ".json":
        df = pd.read_json(path, orient="records")
    else:
        df = pd.read_csv(path, encoding="utf-8")
    logger.info("Loaded {} rows from raw catalog", len(df))
    return df


def seed_catalog(session_factory: sessionmaker, df: pd.DataFrame) -> int:
    """Insert normalized products; rows whose slug already exists are skipped."""
    inserted = 0
    with session_factory.begin() as session:
        existing = set(session.scalars(select(ProductRow.slug)).all())
        for rec in df.to_dict(orient="records"):
            if rec["slug"] in existing:
                continue
            original = rec.get("original_price")
            session.add(
                ProductRow(
                    name=rec["name"],
                    slug=rec["slug"],
                    image=rec.get("image"),
                    price=float(rec["price"]),
                    original_price=None if pd.isna(original) else float(original),
                    category=rec["category"],
                    description=rec.get("description"),
                    materials=rec.get("materials"),
                    colors=list(rec.get("colors") or []),
                    rating=float(rec.get("rating") or 0.0),
                    review_count=int(rec.get("review_count") or 0),
                    stock=int(rec.get("stock") or 0),
                    featured=bool(rec.get("featured")),
                )
            )
            existing.add(rec["slug"])
            inserted += 1
    logger.info("Seeded {} products ({} skipped)", inserted, len(df) - inserted)
    return inserted


def load_catalog_frame(
    session_factory: sessionmaker,
    limit: Optional[int] = None,
    newest_first: bool = False,
) -> pd.DataFrame:
    """
    Read products into a DataFrame with the canonical columns.

    Storefront search reads at most STOREFRONT_CANDIDATE_CAP rows in
    storage order; admin search reads everything newest first.
    """
    stmt = select(*[getattr(ProductRow, c) for c in CATALOG_COLUMNS])
    if newest_first:
        stmt = stmt.order_by(ProductRow.created_at.desc())
    if limit is not None:
        stmt = stmt.limit(limit)

    with session_factory() as session:
        df = pd.read_sql(stmt, session.connection())

    df["colors"] = df["colors"].apply(parse_colors_field)
    return df


def candidates_from_frame(df: pd.DataFrame) -> List[CandidateItem]:
    items: List[CandidateItem] = []
    for row in df.to_dict(orient="records"):
        stock = row.get("stock")
        items.append(
            CandidateItem(
                id=str(row["id"]),
                name=str(row.get("name") or ""),
                category=str(row.get("category") or ""),
                description=row.get("description") or None,
                materials=row.get("materials") or None,
                colors=tuple(row.get("colors") or ()),
                rating=float(row.get("rating") or 0.0),
                review_count=int(row.get("review_count") or 0),
                stock=None if stock is None or pd.isna(stock) else int(stock),
            )
        )
    return items


# ---------------------------
# CLI entrypoint
# ---------------------------

def main() -> None:
    ap = argparse.ArgumentParser(description="Seed the product catalog from a JSON or CSV file")
    ap.add_argument(
        "path",
        type=Path,
        nargs="?",
        default=config.CATALOG_RAW_DIR / "products.json",
        help="Seed file (.json array of products or .csv)",
    )
    ap.add_argument("--database-url", default=config.DATABASE_URL)
    args = ap.parse_args()

    config.DATA_DIR.mkdir(parents=True, exist_ok=True)
    session_factory, _ = create_database(args.database_url)
    seed_catalog(session_factory, normalize_catalog_df(load_raw_catalog(args.path)))


if __name__ == "__main__":
    # python -m storefront.catalog data/catalog_raw/products.json
    main()
