from datetime import datetime

from storefront.notifications import LogNotifier, build_notice, compute_totals
from storefront.stores import Address, ConfirmedOrder, Order, OrderLine, OrderStatus, User


def _lines(price, quantity=1):
    return [OrderLine(product_id="p1", name="Oak Dining Table", image=None, quantity=quantity, price=price)]


def test_compute_totals_flat_shipping_below_threshold():
    totals = compute_totals(_lines(1000.0, 2), charged_total=2000.0)
    assert totals.subtotal == 2000.0
    assert totals.shipping == 500.0
    assert totals.tax == 360.0
    assert totals.total == 2000.0


def test_compute_totals_free_shipping_above_threshold():
    totals = compute_totals(_lines(60000.0), charged_total=60000.0)
    assert totals.shipping == 0.0
    # exactly at the threshold still pays shipping
    assert compute_totals(_lines(50000.0), 50000.0).shipping == 500.0


def test_build_notice_renders_order_summary():
    confirmed = ConfirmedOrder(
        order=Order(
            id="o1",
            user_id="user-1",
            total_amount=1500.0,
            status=OrderStatus.SUCCESS,
            address_id="addr-1",
            payment_method="phonepe:MT1",
            created_at=datetime(2024, 3, 5, 10, 30),
        ),
        user=User(id="user-1", email="asha@example.com", name=None),
        address=Address(
            id="addr-1",
            user_id="user-1",
            street="12 MG Road",
            city="Bengaluru",
            state="Karnataka",
            postal_code="560001",
            country="India",
        ),
        lines=_lines(1500.0),
    )

    notice = build_notice(confirmed)
    assert notice.to_email == "asha@example.com"
    assert notice.customer_name == "asha@example.com"
    assert notice.order_date == "05 March 2024"

    text = notice.render_text()
    assert "1 x Oak Dining Table @ 1,500.00" in text
    assert "Total:    1,500.00" in text
    assert "12 MG Road, Bengaluru, Karnataka 560001, India" in text

    LogNotifier().send(notice)
