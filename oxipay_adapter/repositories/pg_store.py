from __future__ import annotations

from contextlib import contextmanager
from dataclasses import asdict
from decimal import Decimal
from typing import Any, Iterator, Optional
from uuid import UUID

from psycopg2.extras import Json, register_uuid

from oxipay_adapter.config import Settings
from oxipay_adapter.db.client import get_conn
from oxipay_adapter.domain.models import Address, Order, OrderNote
from oxipay_adapter.domain.statuses import OrderStatus, PaymentStatus
from oxipay_adapter.utils.money import round_money

register_uuid()

_ORDER_COLUMNS = """
    id, order_guid, customer_id, total, currency_code, order_status,
    payment_status, refunded_amount, pending_refund_amount, shipping_address, created_at, paid_at
"""


class PgOrderStore:
    """PostgreSQL-backed order store using raw psycopg2.

    ``locked`` takes a row lock (``SELECT ... FOR UPDATE``) so that two
    notifications for the same order are applied one after the other.
    """

    def __init__(self, cfg: Settings):
        self.settings = cfg

    @staticmethod
    def _hydrate_address(raw: Any | None) -> Address | None:
        if not raw:
            return None
        data = dict(raw)
        return Address(
            first_name=data.get("first_name"),
            last_name=data.get("last_name"),
            email=data.get("email"),
            address1=data.get("address1"),
            address2=data.get("address2"),
            city=data.get("city"),
            state_abbreviation=data.get("state_abbreviation"),
            country_code=data.get("country_code"),
            postcode=data.get("postcode"),
        )

    def _hydrate_order(self, cur, row: tuple) -> Order:
        (
            oid,
            order_guid,
            customer_id,
            total,
            currency_code,
            order_status,
            payment_status,
            refunded_amount,
            pending_refund_amount,
            shipping_address,
            created_at,
            paid_at,
        ) = row
        order = Order(
            id=int(oid),
            order_guid=order_guid if isinstance(order_guid, UUID) else UUID(str(order_guid)),
            customer_id=int(customer_id) if customer_id is not None else None,
            total=round_money(total),
            currency_code=str(currency_code) if currency_code else None,
            order_status=OrderStatus(str(order_status)),
            payment_status=PaymentStatus(str(payment_status)),
            refunded_amount=round_money(refunded_amount or Decimal("0")),
            pending_refund_amount=round_money(pending_refund_amount or Decimal("0")),
            shipping_address=self._hydrate_address(shipping_address),
            created_at=created_at,
            paid_at=paid_at,
        )
        cur.execute(
            """
            SELECT id, note, display_to_customer, created_at
              FROM order_note
             WHERE order_id = %s
             ORDER BY created_at ASC, id ASC
            """,
            (order.id,),
        )
        for note_id, note, display, note_created in cur.fetchall() or []:
            order.notes.append(
                OrderNote(id=int(note_id), note=str(note), display_to_customer=bool(display), created_at=note_created)
            )
        cur.execute(
            "SELECT key, value FROM order_attribute WHERE order_id = %s",
            (order.id,),
        )
        for key, value in cur.fetchall() or []:
            order.attributes[str(key)] = value
        return order

    def _fetch_one(self, where: str, params: tuple, *, for_update: bool = False) -> Optional[Order]:
        with get_conn(self.settings) as conn:
            if conn is None:
                return None
            with conn.cursor() as cur:
                return self._select(cur, where, params, for_update=for_update)

    def _select(self, cur, where: str, params: tuple, *, for_update: bool = False) -> Optional[Order]:
        query = f"SELECT {_ORDER_COLUMNS} FROM shop_order WHERE {where} LIMIT 1"
        if for_update:
            query += " FOR UPDATE"
        cur.execute(query, params)
        row = cur.fetchone()
        if not row:
            return None
        return self._hydrate_order(cur, row)

    def add(self, order: Order) -> Order:
        with get_conn(self.settings) as conn:
            if conn is None:
                return order
            with conn.cursor() as cur:
                address = asdict(order.shipping_address) if order.shipping_address else None
                cur.execute(
                    """
                    INSERT INTO shop_order (order_guid, customer_id, total, currency_code, order_status,
                                            payment_status, refunded_amount, shipping_address, created_at)
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
                    RETURNING id
                    """,
                    (
                        order.order_guid,
                        order.customer_id,
                        round_money(order.total),
                        order.currency_code,
                        order.order_status.value,
                        order.payment_status.value,
                        round_money(order.refunded_amount),
                        Json(address) if address else None,
                        order.created_at,
                    ),
                )
                order.id = int(cur.fetchone()[0])
                self._write_children(cur, order)
        return order

    def get_by_guid(self, order_guid: UUID) -> Optional[Order]:
        return self._fetch_one("order_guid = %s", (order_guid,))

    def get_by_id(self, order_id: int) -> Optional[Order]:
        return self._fetch_one("id = %s", (order_id,))

    def latest_for_customer(self, customer_id: int) -> Optional[Order]:
        with get_conn(self.settings) as conn:
            if conn is None:
                return None
            with conn.cursor() as cur:
                cur.execute(
                    f"""
                    SELECT {_ORDER_COLUMNS}
                      FROM shop_order
                     WHERE customer_id = %s
                     ORDER BY created_at DESC, id DESC
                     LIMIT 1
                    """,
                    (customer_id,),
                )
                row = cur.fetchone()
                if not row:
                    return None
                return self._hydrate_order(cur, row)

    def save_attribute(self, order_guid: UUID, key: str, value: Any) -> None:
        with get_conn(self.settings) as conn:
            if conn is None:
                return
            with conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO order_attribute (order_id, key, value)
                    SELECT id, %s, %s FROM shop_order WHERE order_guid = %s
                    ON CONFLICT (order_id, key) DO UPDATE SET value = EXCLUDED.value
                    """,
                    (key, str(value), order_guid),
                )

    def _write_children(self, cur, order: Order) -> None:
        for note in order.notes:
            if note.id is not None:
                continue
            cur.execute(
                """
                INSERT INTO order_note (order_id, note, display_to_customer, created_at)
                VALUES (%s, %s, %s, %s)
                RETURNING id
                """,
                (order.id, note.note, note.display_to_customer, note.created_at),
            )
            note.id = int(cur.fetchone()[0])
        for key, value in order.attributes.items():
            cur.execute(
                """
                INSERT INTO order_attribute (order_id, key, value)
                VALUES (%s, %s, %s)
                ON CONFLICT (order_id, key) DO UPDATE SET value = EXCLUDED.value
                """,
                (order.id, key, str(value)),
            )

    @contextmanager
    def locked(self, order_guid: UUID) -> Iterator[Optional[Order]]:
        """Yield the row-locked order and persist its changes on exit."""
        with get_conn(self.settings) as conn:
            if conn is None:
                yield None
                return
            with conn.cursor() as cur:
                order = self._select(cur, "order_guid = %s", (order_guid,), for_update=True)
                yield order
                if order is None:
                    return
                cur.execute(
                    """
                    UPDATE shop_order
                       SET order_status = %s,
                           payment_status = %s,
                           refunded_amount = %s,
                           pending_refund_amount = %s,
                           paid_at = %s,
                           updated_at = NOW()
                     WHERE id = %s
                    """,
                    (
                        order.order_status.value,
                        order.payment_status.value,
                        round_money(order.refunded_amount),
                        round_money(order.pending_refund_amount),
                        order.paid_at,
                        order.id,
                    ),
                )
                self._write_children(cur, order)
