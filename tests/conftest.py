from dataclasses import dataclass, field
from typing import Any, Dict, List

import pytest

from storefront.db import AddressRow, CartItemRow, ProductRow, UserRow, create_database
from storefront.phonepe import GatewayResponse


class FakeGateway:
    """
    Stand-in for PhonePeClient with scripted responses and call recording.
    """

    merchant_id = "MERCHANTUAT"

    def __init__(self, pay_response=None, status_response=None, pay_error=None, status_error=None):
        self.pay_response = pay_response or GatewayResponse(
            success=True,
            code="PAYMENT_INITIATED",
            data={"instrumentResponse": {"redirectInfo": {"url": "https://pay.example/checkout"}}},
        )
        self.status_response = status_response or GatewayResponse(success=True, code="PAYMENT_SUCCESS")
        self.pay_error = pay_error
        self.status_error = status_error
        self.payloads: List[Dict[str, Any]] = []
        self.status_calls: List[str] = []

    def pay(self, payload):
        self.payloads.append(payload)
        if self.pay_error is not None:
            raise self.pay_error
        return self.pay_response

    def check_status(self, transaction_id):
        self.status_calls.append(transaction_id)
        if self.status_error is not None:
            raise self.status_error
        return self.status_response


@dataclass
class RecordingNotifier:
    sent: List[Any] = field(default_factory=list)

    def send(self, notice):
        self.sent.append(notice)


@dataclass
class Seeded:
    user_id: str
    other_user_id: str
    address_id: str
    product_ids: List[str]


@pytest.fixture
def session_factory(tmp_path):
    factory, engine = create_database(f"sqlite:///{tmp_path / 'test.db'}")
    yield factory
    engine.dispose()


@pytest.fixture
def seeded(session_factory) -> Seeded:
    with session_factory.begin() as session:
        user = UserRow(id="user-1", email="asha@example.com", name="Asha")
        other = UserRow(id="user-2", email="ravi@example.com", name="Ravi")
        session.add_all([user, other])
        address = AddressRow(
            id="addr-1",
            user_id="user-1",
            street="12 MG Road",
            city="Bengaluru",
            state="Karnataka",
            postal_code="560001",
        )
        session.add(address)
        table = ProductRow(
            id="prod-table",
            name="Oak Dining Table",
            slug="oak-dining-table",
            price=1500.0,
            category="Dining",
            stock=4,
            colors=["Natural Oak"],
        )
        chair = ProductRow(
            id="prod-chair",
            name="Office Chair",
            slug="office-chair",
            price=249.75,
            category="Office",
            stock=1,
        )
        session.add_all([table, chair])
        session.add_all(
            [
                CartItemRow(user_id="user-1", product_id="prod-table", quantity=1),
                CartItemRow(user_id="user-1", product_id="prod-chair", quantity=2),
            ]
        )
    return Seeded(
        user_id="user-1",
        other_user_id="user-2",
        address_id="addr-1",
        product_ids=["prod-table", "prod-chair"],
    )
