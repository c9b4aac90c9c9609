from __future__ import annotations

"""
Order confirmation notice.

Builds the summary customers receive once a payment is confirmed. Delivery
(SMTP, transactional mail APIs) is an external concern; the default
``LogNotifier`` writes the rendered notice to the log.
"""

from dataclasses import dataclass
from typing import List, Protocol

from loguru import logger

from .config import FLAT_SHIPPING_FEE, FREE_SHIPPING_THRESHOLD, TAX_RATE
from .stores import ConfirmedOrder, OrderLine


@dataclass(frozen=True)
class OrderTotals:
    subtotal: float
    shipping: float
    tax: float
    total: float


@dataclass(frozen=True)
class ConfirmationNotice:
    to_email: str
    customer_name: str
    order_id: str
    order_date: str
    lines: List[OrderLine]
    totals: OrderTotals
    shipping_address: str

    def render_text(self) -> str:
        out = [
            f"Hi {self.customer_name},",
            f"Thank you for your order {self.order_id} placed on {self.order_date}.",
            "",
        ]
        for line in self.lines:
            out.append(f"  {line.quantity} x {line.name} @ {line.price:,.2f}")
        out += [
            "",
            f"Subtotal: {self.totals.subtotal:,.2f}",
            f"Shipping: {self.totals.shipping:,.2f}",
            f"Tax:      {self.totals.tax:,.2f}",
            f"Total:    {self.totals.total:,.2f}",
        ]
        if self.shipping_address:
            out += ["", f"Shipping to: {self.shipping_address}"]
        return "\n".join(out)


def compute_totals(lines: List[OrderLine], charged_total: float) -> OrderTotals:
    """
    Shipping is free above FREE_SHIPPING_THRESHOLD; tax is TAX_RATE of the
    subtotal. The total shown is what was actually charged.
    """
    subtotal = sum(line.price * line.quantity for line in lines)
    shipping = 0 if subtotal > FREE_SHIPPING_THRESHOLD else FLAT_SHIPPING_FEE
    tax = subtotal * TAX_RATE
    return OrderTotals(subtotal=subtotal, shipping=float(shipping), tax=tax, total=charged_total)


def build_notice(confirmed: ConfirmedOrder) -> ConfirmationNotice:
    addr = confirmed.address
    address_text = ""
    if addr is not None:
        address_text = f"{addr.street}, {addr.city}, {addr.state} {addr.postal_code}, {addr.country}"

    return ConfirmationNotice(
        to_email=confirmed.user.email,
        customer_name=confirmed.user.name or confirmed.user.email,
        order_id=confirmed.order.id,
        order_date=confirmed.order.created_at.strftime("%d %B %Y"),
        lines=list(confirmed.lines),
        totals=compute_totals(confirmed.lines, confirmed.order.total_amount),
        shipping_address=address_text,
    )


class ConfirmationNotifier(Protocol):
    def send(self, notice: ConfirmationNotice) -> None: ...


class LogNotifier:
    def send(self, notice: ConfirmationNotice) -> None:
        logger.info(
            "Order confirmation for {} <{}>:\n{}",
            notice.order_id,
            notice.to_email,
            notice.render_text(),
        )
