"""
Typed SQLAlchemy stores for the rows the payment coordinator reads and writes.

Stores hand out frozen dataclasses rather than ORM rows so nothing outside
this module holds a live session.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import List, Optional

from loguru import logger
from sqlalchemy import delete, select, update
from sqlalchemy.orm import sessionmaker

from .db import AddressRow, CartItemRow, OrderItemRow, OrderRow, ProductRow, UserRow


class OrderStatus(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class User:
    id: str
    email: str
    name: Optional[str]


@dataclass(frozen=True)
class Address:
    id: str
    user_id: str
    street: str
    city: str
    state: str
    postal_code: str
    country: str


@dataclass(frozen=True)
class NewOrder:
    user_id: str
    total_amount: float
    address_id: str
    payment_method: str


@dataclass(frozen=True)
class Order:
    id: str
    user_id: str
    total_amount: float
    status: OrderStatus
    address_id: Optional[str]
    payment_method: Optional[str]
    created_at: datetime


@dataclass(frozen=True)
class OrderLine:
    product_id: str
    name: str
    image: Optional[str]
    quantity: int
    price: float


@dataclass(frozen=True)
class ConfirmedOrder:
    """What the winning confirmation committed; feeds the confirmation notice."""

    order: Order
    user: User
    address: Optional[Address]
    lines: List[OrderLine]


def _to_order(row: OrderRow) -> Order:
    return Order(
        id=row.id,
        user_id=row.user_id,
        total_amount=float(row.total_amount),
        status=OrderStatus(row.status),
        address_id=row.address_id,
        payment_method=row.payment_method,
        created_at=row.created_at,
    )


def _to_address(row: AddressRow) -> Address:
    return Address(
        id=row.id,
        user_id=row.user_id,
        street=row.street,
        city=row.city,
        state=row.state,
        postal_code=row.postal_code,
        country=row.country,
    )


def _to_user(row: UserRow) -> User:
    return User(id=row.id, email=row.email, name=row.name)


class UserStore:
    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def find_by_id(self, user_id: str) -> Optional[User]:
        with self._session_factory() as session:
            row = session.get(UserRow, user_id)
            return _to_user(row) if row is not None else None


class AddressStore:
    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def find_by_id(self, address_id: str, owner_user_id: str) -> Optional[Address]:
        """Lookups are always scoped to the requesting user."""
        with self._session_factory() as session:
            row = session.scalars(
                select(AddressRow).where(
                    AddressRow.id == address_id,
                    AddressRow.user_id == owner_user_id,
                )
            ).first()
            return _to_address(row) if row is not None else None


class OrderStore:
    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def create(self, order: NewOrder) -> Order:
        with self._session_factory.begin() as session:
            row = OrderRow(
                user_id=order.user_id,
                total_amount=order.total_amount,
                status=OrderStatus.PENDING.value,
                address_id=order.address_id,
                payment_method=order.payment_method,
            )
            session.add(row)
            session.flush()
            created = _to_order(row)
        logger.info("Created pending order {} for user {}", created.id, created.user_id)
        return created

    def find_by_id(self, order_id: str) -> Optional[Order]:
        with self._session_factory() as session:
            row = session.get(OrderRow, order_id)
            return _to_order(row) if row is not None else None

    def delete(self, order_id: str) -> bool:
        with self._session_factory.begin() as session:
            session.execute(delete(OrderItemRow).where(OrderItemRow.order_id == order_id))
            result = session.execute(delete(OrderRow).where(OrderRow.id == order_id))
            deleted = result.rowcount == 1
        if deleted:
            logger.info("Deleted order {}", order_id)
        return deleted

    def update_status(self, order_id: str, from_status: OrderStatus, to_status: OrderStatus) -> bool:
        """
        Compare-and-set on the persisted status. Returns True only for the
        caller whose UPDATE actually moved the row.
        """
        with self._session_factory.begin() as session:
            result = session.execute(
                update(OrderRow)
                .where(OrderRow.id == order_id, OrderRow.status == from_status.value)
                .values(status=to_status.value, updated_at=datetime.now())
            )
            moved = result.rowcount == 1
        if moved:
            logger.info("Order {}: {} -> {}", order_id, from_status.value, to_status.value)
        return moved

    def confirm(self, order_id: str, payment_method: str) -> Optional[ConfirmedOrder]:
        """
        Move a pending order to success and apply its side effects in one
        transaction: cart lines become order items at the current product
        price, stock is decremented and the cart is cleared.

        The status UPDATE is guarded on ``status == 'pending'`` and on the
        payment method the order was created with, so only one caller ever
        wins. Every other caller gets None and changes nothing.
        """
        with self._session_factory.begin() as session:
            result = session.execute(
                update(OrderRow)
                .where(
                    OrderRow.id == order_id,
                    OrderRow.status == OrderStatus.PENDING.value,
                    OrderRow.payment_method == payment_method,
                )
                .values(status=OrderStatus.SUCCESS.value, updated_at=datetime.now())
            )
            if result.rowcount != 1:
                logger.info("Order {} already processed; confirmation skipped", order_id)
                return None

            order_row = session.get(OrderRow, order_id)
            user_row = session.get(UserRow, order_row.user_id)
            address_row = session.get(AddressRow, order_row.address_id) if order_row.address_id else None

            cart = session.execute(
                select(CartItemRow, ProductRow)
                .join(ProductRow, ProductRow.id == CartItemRow.product_id)
                .where(CartItemRow.user_id == order_row.user_id)
            ).all()
            if not cart:
                logger.warning("Order {} confirmed with an empty cart for user {}", order_id, order_row.user_id)

            lines: List[OrderLine] = []
            for cart_item, product in cart:
                session.add(
                    OrderItemRow(
                        order_id=order_id,
                        product_id=product.id,
                        quantity=cart_item.quantity,
                        price=product.price,
                    )
                )
                product.stock = max(0, product.stock - cart_item.quantity)
                lines.append(
                    OrderLine(
                        product_id=product.id,
                        name=product.name,
                        image=product.image,
                        quantity=cart_item.quantity,
                        price=float(product.price),
                    )
                )

            session.execute(delete(CartItemRow).where(CartItemRow.user_id == order_row.user_id))
            session.flush()

            confirmed = ConfirmedOrder(
                order=_to_order(order_row),
                user=_to_user(user_row),
                address=_to_address(address_row) if address_row is not None else None,
                lines=lines,
            )

        logger.info("Order {} confirmed with {} items", order_id, len(lines))
        return confirmed
