from __future__ import annotations

import os
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# ---------------------------
# Paths
# ---------------------------

PROJECT_ROOT = Path(__file__).resolve().parents[1]

DATA_DIR = PROJECT_ROOT / "data"
CATALOG_RAW_DIR = DATA_DIR / "catalog_raw"

DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{DATA_DIR / 'storefront.db'}")


# ---------------------------
# Search scoring
# ---------------------------

PHRASE_NAME_WEIGHT = 100
PHRASE_CATEGORY_WEIGHT = 80

WORD_NAME_WEIGHT = 50
WORD_CATEGORY_WEIGHT = 40
WORD_DESCRIPTION_WEIGHT = 20
WORD_MATERIALS_WEIGHT = 30
WORD_IDENTIFIER_WEIGHT = 30   # admin only
WORD_COLOR_WEIGHT = 25

FUZZY_THRESHOLD = 0.6
FUZZY_NAME_WEIGHT = 40
FUZZY_CATEGORY_WEIGHT = 30

STOREFRONT_SEARCH_LIMIT = 10
ADMIN_SEARCH_LIMIT = 15
STOREFRONT_CANDIDATE_CAP = 100   # rows pulled from the catalog per search

LOW_STOCK_THRESHOLD = 10

MAX_QUERY_CHARS = 200
MAX_INPUT_CHARS = 20_000


# ---------------------------
# PhonePe gateway
# ---------------------------

PHONEPE_HOST_URL = os.getenv(
    "PHONEPE_HOST_URL", "https://api-preprod.phonepe.com/apis/pg-sandbox"
)
PHONEPE_MERCHANT_ID = os.getenv("PHONEPE_MERCHANT_ID", "PGTESTPAYUAT")
PHONEPE_SALT_KEY = os.getenv("PHONEPE_SALT_KEY", "")
PHONEPE_SALT_INDEX = os.getenv("PHONEPE_SALT_INDEX", "1")

PHONEPE_PAY_PATH = "/pg/v1/pay"
PHONEPE_STATUS_PATH = "/pg/v1/status"

# where the browser lands after the gateway (callback, verify, result pages)
APP_BASE_URL = os.getenv("APP_BASE_URL", "http://localhost:3000").rstrip("/")

DEFAULT_MOBILE_NUMBER = "9999999999"
PAYMENT_METHOD_PREFIX = "phonepe"

GATEWAY_CONNECT_TIMEOUT = float(os.getenv("GATEWAY_CONNECT_TIMEOUT", "5.0"))
GATEWAY_READ_TIMEOUT = float(os.getenv("GATEWAY_READ_TIMEOUT", "15.0"))

HTTP_USER_AGENT = "furniture-storefront/1.0"

API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "8000"))


# ---------------------------
# Order confirmation
# ---------------------------

FREE_SHIPPING_THRESHOLD = 50_000
FLAT_SHIPPING_FEE = 500
TAX_RATE = 0.18


# ---------------------------
# Pydantic models shared around the app
# ---------------------------

class ApiModel(BaseModel):
    """Base for API payloads: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ProductSummary(ApiModel):
    """
    A product as returned by the storefront search.
    """

    id: str
    name: str
    slug: str
    image: Optional[str] = None
    price: float = Field(ge=0)
    category: str
    description: Optional[str] = None
    rating: float = 0.0
    review_count: int = Field(default=0, ge=0)
    materials: Optional[str] = None
    colors: List[str] = Field(default_factory=list)


class AdminProductSummary(ApiModel):
    """
    A product row as shown in the admin search, with inventory fields.
    """

    id: str
    name: str
    slug: str
    image: Optional[str] = None
    price: float = Field(ge=0)
    original_price: Optional[float] = None
    category: str
    stock: int = Field(default=0, ge=0)
    rating: float = 0.0
    review_count: int = Field(default=0, ge=0)
    featured: bool = False


class SearchResponse(ApiModel):
    success: bool = True
    data: List[ProductSummary]


class AdminSearchResponse(ApiModel):
    success: bool = True
    data: List[AdminProductSummary]
    count: int


class InitiatePaymentRequest(ApiModel):
    """
    Body for POST /api/payment/phonepe/initiate.

    Fields are optional here so that missing values surface as a 400 with a
    readable message instead of a schema error.
    """

    amount: Optional[float] = None
    address_id: Optional[str] = None
    mobile_number: Optional[str] = None


class InitiatePaymentData(ApiModel):
    redirect_url: str
    merchant_transaction_id: str
    order_id: str


class InitiatePaymentResponse(ApiModel):
    success: bool = True
    data: InitiatePaymentData


class OrderStatusResponse(ApiModel):
    order_id: str
    status: str
    total_amount: float
    transaction_id: Optional[str] = None


class HealthResponse(BaseModel):
    """
    Response body for GET /health.
    """

    status: str
