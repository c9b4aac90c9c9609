from __future__ import annotations

"""
FastAPI application for the furniture storefront core.

- /api/search and /api/admin/search: in-memory relevance search over the catalog
- /api/payment/phonepe/*: checkout payment life cycle against PhonePe
"""

from typing import Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from loguru import logger
from sqlalchemy.orm import sessionmaker
import uvicorn

from . import config
from ._singletons import get_gateway, get_notifier, get_session_factory
from .auth import current_user
from .catalog import candidates_from_frame, load_catalog_frame
from .config import (
    AdminSearchResponse,
    HealthResponse,
    InitiatePaymentData,
    InitiatePaymentRequest,
    InitiatePaymentResponse,
    OrderStatusResponse,
    SearchResponse,
)
from .errors import StorefrontError
from .mapping import map_admin_products, map_products
from .normalize import clamp_text_length
from .payments import PaymentCoordinator, recover_transaction_id
from .phonepe import PhonePeClient
from .search import ADMIN, STOREFRONT, filter_by_stock, search
from .stores import AddressStore, OrderStore, User


# -----------------------
# FastAPI app + startup
# -----------------------

app = FastAPI(title="Furniture Storefront")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def startup_event() -> None:
    logger.info("Starting storefront...")
    get_session_factory()
    if not config.PHONEPE_SALT_KEY:
        logger.warning("PHONEPE_SALT_KEY not configured; payments will fail at the gateway")
    logger.info("Startup complete.")


@app.exception_handler(StorefrontError)
def storefront_error_handler(request: Request, exc: StorefrontError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("{} {} failed: {}", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"success": False, "error": exc.message})


@app.exception_handler(Exception)
def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on {} {}", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"success": False, "error": "Internal server error"})


def get_coordinator(
    session_factory: sessionmaker = Depends(get_session_factory),
    gateway: PhonePeClient = Depends(get_gateway),
    notifier=Depends(get_notifier),
) -> PaymentCoordinator:
    return PaymentCoordinator(
        orders=OrderStore(session_factory),
        addresses=AddressStore(session_factory),
        gateway=gateway,
        notifier=notifier,
    )


@app.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    return HealthResponse(status="healthy")


# -----------------------
# Search
# -----------------------

@app.get("/api/search", response_model=SearchResponse)
def storefront_search(
    q: Optional[str] = None,
    session_factory: sessionmaker = Depends(get_session_factory),
) -> SearchResponse:
    query = clamp_text_length((q or "").strip(), config.MAX_QUERY_CHARS)
    if not query:
        return SearchResponse(data=[])

    catalog_df = load_catalog_frame(session_factory, limit=config.STOREFRONT_CANDIDATE_CAP)
    results = search(query, candidates_from_frame(catalog_df), profile=STOREFRONT)
    return SearchResponse(data=map_products([c.id for c in results], catalog_df))


@app.get("/api/admin/search", response_model=AdminSearchResponse)
def admin_search(
    q: Optional[str] = None,
    stock: Optional[str] = Query(default=None, description='"low", "out" or "all"'),
    session_factory: sessionmaker = Depends(get_session_factory),
) -> AdminSearchResponse:
    query = clamp_text_length((q or "").strip(), config.MAX_QUERY_CHARS)
    if not query:
        return AdminSearchResponse(data=[], count=0)

    catalog_df = load_catalog_frame(session_factory, newest_first=True)
    candidates = filter_by_stock(candidates_from_frame(catalog_df), stock)
    results = search(query, candidates, profile=ADMIN)
    data = map_admin_products([c.id for c in results], catalog_df)
    return AdminSearchResponse(data=data, count=len(data))


# -----------------------
# Payments (PhonePe)
# -----------------------

@app.post("/api/payment/phonepe/initiate", response_model=InitiatePaymentResponse)
def initiate_payment(
    req: InitiatePaymentRequest,
    user: User = Depends(current_user),
    coordinator: PaymentCoordinator = Depends(get_coordinator),
) -> InitiatePaymentResponse:
    initiated = coordinator.initiate(
        amount=req.amount,
        address_id=req.address_id,
        user=user,
        mobile_number=req.mobile_number,
    )
    return InitiatePaymentResponse(
        data=InitiatePaymentData(
            redirect_url=initiated.redirect_url,
            merchant_transaction_id=initiated.transaction_id,
            order_id=initiated.order_id,
        )
    )


@app.api_route("/api/payment/phonepe/callback", methods=["GET", "POST"])
def payment_callback(
    request: Request,
    orderId: Optional[str] = None,
    coordinator: PaymentCoordinator = Depends(get_coordinator),
) -> RedirectResponse:
    target = coordinator.handle_callback(orderId, dict(request.query_params))
    return RedirectResponse(target, status_code=303 if request.method == "POST" else 307)


@app.get("/api/payment/phonepe/verify")
def payment_verify(
    orderId: Optional[str] = None,
    transactionId: Optional[str] = None,
    coordinator: PaymentCoordinator = Depends(get_coordinator),
) -> RedirectResponse:
    return RedirectResponse(coordinator.verify(orderId, transactionId), status_code=307)


@app.get("/api/payment/phonepe/status/{order_id}", response_model=OrderStatusResponse)
def payment_status(
    order_id: str,
    user: User = Depends(current_user),
    coordinator: PaymentCoordinator = Depends(get_coordinator),
) -> OrderStatusResponse:
    order = coordinator.order_status(order_id, user)
    return OrderStatusResponse(
        order_id=order.id,
        status=order.status.value,
        total_amount=order.total_amount,
        transaction_id=recover_transaction_id(order.payment_method),
    )


def main() -> None:
    # python -m storefront.api
    uvicorn.run(app, host=config.API_HOST, port=config.API_PORT)


if __name__ == "__main__":
    main()
