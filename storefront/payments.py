from __future__ import annotations

"""
Payment transaction coordinator for PhonePe checkouts.

Life cycle of one checkout attempt:

  initiate  -> pending order + signed pay request -> gateway redirect URL
  callback  -> status check -> redirect to verify (or to the failure page)
  verify    -> status re-check -> atomic pending -> success + side effects

``initiate`` raises structured errors for the API caller. ``handle_callback``
and ``verify`` are hit by browser redirects, so they never raise: every
failure becomes a redirect to the failure page with a ``reason``.
"""

from dataclasses import dataclass
from typing import Mapping, Optional
from urllib.parse import urlencode

from loguru import logger

from . import config
from .errors import InternalError, InvalidRequest, NotFound, StorefrontError, UpstreamFailure
from .notifications import ConfirmationNotifier, LogNotifier, build_notice
from .phonepe import GatewayResponse, PhonePeClient, build_pay_payload, generate_transaction_id
from .stores import AddressStore, NewOrder, Order, OrderStatus, OrderStore, User


# failure reasons carried on the payment-failed redirect
REASON_MISSING_ORDER_ID = "MISSING_ORDER_ID"
REASON_MISSING_PARAMETERS = "MISSING_PARAMETERS"
REASON_ORDER_NOT_FOUND = "ORDER_NOT_FOUND"
REASON_INVALID_TRANSACTION = "INVALID_TRANSACTION"
REASON_PAYMENT_FAILED = "PAYMENT_FAILED"
REASON_UNKNOWN = "UNKNOWN"
REASON_CALLBACK_FAILED = "CALLBACK_PROCESSING_FAILED"
REASON_VERIFICATION_FAILED = "VERIFICATION_FAILED"


@dataclass(frozen=True)
class InitiatedPayment:
    redirect_url: str
    transaction_id: str
    order_id: str


# ---------------------------
# Transaction id <-> payment_method
# ---------------------------

def embed_transaction_id(transaction_id: str) -> str:
    return f"{config.PAYMENT_METHOD_PREFIX}:{transaction_id}"


def recover_transaction_id(payment_method: Optional[str]) -> Optional[str]:
    """Return the transaction id from ``"phonepe:<txn>"``, else None."""
    if not payment_method:
        return None
    prefix, sep, txn = payment_method.partition(":")
    if not sep or prefix != config.PAYMENT_METHOD_PREFIX:
        return None
    txn = txn.strip()
    if not txn or not txn.replace("_", "").replace("-", "").isalnum():
        return None
    return txn


# ---------------------------
# Redirect targets
# ---------------------------

def _url(base_url: str, path: str, **params: str) -> str:
    query = urlencode({k: v for k, v in params.items() if v is not None})
    return f"{base_url}{path}?{query}" if query else f"{base_url}{path}"


def failure_url(base_url: str, reason: str, order_id: Optional[str] = None) -> str:
    return _url(base_url, "/payment-failed", orderId=order_id, reason=reason)


def success_url(base_url: str, order_id: str) -> str:
    return _url(base_url, "/order-success", orderId=order_id)


def callback_url(base_url: str, order_id: str) -> str:
    return _url(base_url, "/api/payment/phonepe/callback", orderId=order_id)


def verify_url(base_url: str, order_id: str, transaction_id: str) -> str:
    return _url(base_url, "/api/payment/phonepe/verify", orderId=order_id, transactionId=transaction_id)


# ---------------------------
# Coordinator
# ---------------------------

class PaymentCoordinator:
    def __init__(
        self,
        orders: OrderStore,
        addresses: AddressStore,
        gateway: PhonePeClient,
        notifier: Optional[ConfirmationNotifier] = None,
        base_url: str = config.APP_BASE_URL,
    ) -> None:
        self.orders = orders
        self.addresses = addresses
        self.gateway = gateway
        self.notifier = notifier or LogNotifier()
        self.base_url = base_url.rstrip("/")

    # -- initiate -----------------------------------------------------------

    def initiate(
        self,
        amount: Optional[float],
        address_id: Optional[str],
        user: User,
        mobile_number: Optional[str] = None,
    ) -> InitiatedPayment:
        if amount is None or not address_id:
            raise InvalidRequest("Amount and address are required")
        try:
            amount = float(amount)
        except (TypeError, ValueError):
            raise InvalidRequest("Amount must be a number")
        if not amount > 0:
            raise InvalidRequest("Amount must be positive")

        if self.addresses.find_by_id(address_id, user.id) is None:
            raise InvalidRequest("Invalid address")

        transaction_id = generate_transaction_id()
        order = self.orders.create(
            NewOrder(
                user_id=user.id,
                total_amount=amount,
                address_id=address_id,
                payment_method=embed_transaction_id(transaction_id),
            )
        )

        try:
            payload = build_pay_payload(
                merchant_id=self.gateway.merchant_id,
                transaction_id=transaction_id,
                user_id=user.id,
                amount=amount,
                redirect_url=callback_url(self.base_url, order.id),
                mobile_number=mobile_number,
            )
            result = self.gateway.pay(payload)
            redirect_url = result.redirect_url if result.success else None
            if not redirect_url:
                logger.warning(
                    "PhonePe rejected transaction {} (code={}): {}",
                    transaction_id,
                    result.code or REASON_UNKNOWN,
                    result.message,
                )
                raise UpstreamFailure("Failed to initiate payment")
        except Exception as e:
            # no orphaned pending order survives a failed initiation
            self.orders.delete(order.id)
            if isinstance(e, StorefrontError):
                raise
            logger.exception("Unexpected error initiating payment for order {}", order.id)
            raise InternalError("Internal server error") from e

        logger.info("Payment {} initiated for order {}", transaction_id, order.id)
        return InitiatedPayment(redirect_url=redirect_url, transaction_id=transaction_id, order_id=order.id)

    # -- callback -----------------------------------------------------------

    def handle_callback(self, order_id: Optional[str], query_params: Optional[Mapping[str, str]] = None) -> str:
        """Return the URL to redirect the browser to. Never raises."""
        logger.info("PhonePe callback for order {} params={}", order_id, dict(query_params or {}))
        try:
            if not order_id:
                return failure_url(self.base_url, REASON_MISSING_ORDER_ID)

            order = self.orders.find_by_id(order_id)
            if order is None:
                logger.warning("Callback for unknown order {}", order_id)
                return failure_url(self.base_url, REASON_ORDER_NOT_FOUND, order_id)

            transaction_id = recover_transaction_id(order.payment_method)
            if transaction_id is None:
                logger.warning("Order {} carries no transaction id ({!r})", order_id, order.payment_method)
                return failure_url(self.base_url, REASON_INVALID_TRANSACTION, order_id)

            status = self.gateway.check_status(transaction_id)
            if status.is_paid:
                return verify_url(self.base_url, order_id, transaction_id)

            self._record_failure(order, status)
            return failure_url(self.base_url, status.code or REASON_UNKNOWN, order_id)
        except Exception:
            logger.exception("PhonePe callback processing failed for order {}", order_id)
            return failure_url(self.base_url, REASON_CALLBACK_FAILED, order_id)

    # -- verify -------------------------------------------------------------

    def verify(self, order_id: Optional[str], transaction_id: Optional[str]) -> str:
        """
        Confirm a paid order. Safe to hit repeatedly: only the first call
        that wins the pending -> success transition applies side effects.
        """
        try:
            if not order_id or not transaction_id:
                return failure_url(self.base_url, REASON_MISSING_PARAMETERS, order_id)

            order = self.orders.find_by_id(order_id)
            if order is None:
                return failure_url(self.base_url, REASON_ORDER_NOT_FOUND, order_id)

            if recover_transaction_id(order.payment_method) != transaction_id:
                logger.warning("Transaction mismatch on order {}: got {}", order_id, transaction_id)
                return failure_url(self.base_url, REASON_INVALID_TRANSACTION, order_id)

            if order.status is OrderStatus.SUCCESS:
                logger.info("Order {} already confirmed", order_id)
                return success_url(self.base_url, order_id)
            if order.status is OrderStatus.FAILED:
                return failure_url(self.base_url, REASON_PAYMENT_FAILED, order_id)

            status = self.gateway.check_status(transaction_id)
            if not status.is_paid:
                self._record_failure(order, status)
                return failure_url(self.base_url, status.code or REASON_PAYMENT_FAILED, order_id)

            confirmed = self.orders.confirm(order_id, embed_transaction_id(transaction_id))
            if confirmed is not None:
                try:
                    self.notifier.send(build_notice(confirmed))
                except Exception as e:
                    logger.error("Sending confirmation for order {} failed (non-blocking): {}", order_id, e)

            return success_url(self.base_url, order_id)
        except Exception:
            logger.exception("PhonePe verification failed for order {}", order_id)
            return failure_url(self.base_url, REASON_VERIFICATION_FAILED, order_id)

    # -- status -------------------------------------------------------------

    def order_status(self, order_id: str, user: User) -> Order:
        order = self.orders.find_by_id(order_id)
        if order is None or order.user_id != user.id:
            raise NotFound("Order not found")
        return order

    def _record_failure(self, order: Order, status: GatewayResponse) -> None:
        if order.status is OrderStatus.PENDING and status.is_terminal_failure:
            self.orders.update_status(order.id, OrderStatus.PENDING, OrderStatus.FAILED)
        else:
            logger.info("Order {} left {} after gateway code {}", order.id, order.status.value, status.code)
