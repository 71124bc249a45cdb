"""Tests for the order lifecycle: placement, edits, status changes and table release."""

from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest

from digital_menu.core.exceptions import ConflictError, NotFoundError, ValidationError
from digital_menu.models import Order, OrderItem, OrderItemCustomization, Table
from digital_menu.schemas.order import OrderCreate, OrderUpdate
from digital_menu.services.order_service import (
    OrderService,
    generate_order_number,
    resolve_payment_method,
    validate_items,
)
from digital_menu.services.table_service import TableService

API = "/api/v1"


def _create(db, table_id, menu_item_id, **overrides):
    body = {
        "table": table_id,
        "items": [{"item": menu_item_id, "quantity": 1, "price": "250.00"}],
        "total_amount": "250.00",
    }
    body.update(overrides)
    return OrderService(db).create(OrderCreate.model_validate(body))


# ============== Pure helpers ==============

class TestOrderHelpers:
    def test_quantity_defaults_to_one(self):
        lines = validate_items(OrderCreate.model_validate({
            "items": [{"item": 1, "price": "10"}],
        }).items)
        assert lines[0].quantity == 1

    def test_missing_customization_fields_are_filled(self):
        lines = validate_items(OrderCreate.model_validate({
            "items": [{"item": 1, "price": "10", "customizations": [{}]}],
        }).items)
        c = lines[0].customizations[0]
        assert (c.option_name, c.selection, c.price_addition) == ("", "", Decimal("0"))

    @pytest.mark.parametrize("item", [
        {"price": "10"},
        {"item": 1},
        {"item": 1, "price": "0"},
        {"item": 1, "price": "10", "quantity": 0},
        {"item": 1, "price": "10", "customizations": [{"price_addition": "-1"}]},
    ])
    def test_invalid_lines_rejected(self, item):
        with pytest.raises(ValidationError):
            validate_items(OrderCreate.model_validate({"items": [item]}).items)

    def test_empty_items_yield_no_lines(self):
        assert validate_items([]) == []
        assert validate_items(None) == []

    def test_unknown_payment_method_falls_back_to_cash(self):
        assert resolve_payment_method("online_payment") == "online_payment"
        assert resolve_payment_method("bitcoin") == "cash"
        assert resolve_payment_method(None) == "cash"

    def test_order_numbers_are_unique(self):
        numbers = {generate_order_number() for _ in range(50)}
        assert len(numbers) == 50
        assert all(n.startswith("ORD-") for n in numbers)


# ============== Service ==============

class TestOrderCreate:
    def test_create_seats_order_at_table(self, db_session, test_order, test_table):
        table = db_session.get(Table, test_table.id)
        assert table.status == "occupied"
        assert table.current_order_id == test_order.id

    def test_create_stores_snapshot(self, test_order, test_menu_item):
        assert test_order.status == "pending"
        assert test_order.payment_status == "pending"
        assert test_order.total_amount == Decimal("540.00")
        line = test_order.items[0]
        assert line.menu_item_id == test_menu_item.id
        assert line.quantity == 2
        assert line.price == Decimal("250.00")
        assert line.notes == "extra spicy"
        assert [(c.option_name, c.selection, c.price_addition) for c in line.customizations] == [
            ("Sauce", "Tomato", Decimal("20.00")),
        ]

    def test_missing_table_is_not_found(self, db_session, test_menu_item):
        with pytest.raises(NotFoundError):
            _create(db_session, 999, test_menu_item.id)
        assert db_session.query(Order).count() == 0

    def test_missing_menu_item_is_not_found(self, db_session, test_table):
        with pytest.raises(NotFoundError):
            _create(db_session, test_table.id, 999)
        assert db_session.query(Order).count() == 0
        assert db_session.get(Table, test_table.id).status == "available"

    def test_missing_values_rejected(self, db_session, test_table, test_menu_item):
        with pytest.raises(ValidationError):
            _create(db_session, test_table.id, test_menu_item.id, total_amount=None)
        with pytest.raises(ValidationError):
            _create(db_session, None, test_menu_item.id)
        with pytest.raises(ValidationError):
            _create(db_session, test_table.id, test_menu_item.id, total_amount="-1")
        with pytest.raises(ValidationError):
            _create(db_session, test_table.id, test_menu_item.id, items=[])

    def test_zero_price_writes_nothing(self, db_session, test_table, test_menu_item):
        with pytest.raises(ValidationError):
            _create(db_session, test_table.id, test_menu_item.id, items=[{"item": test_menu_item.id, "price": 0}])
        assert db_session.query(Order).count() == 0
        assert db_session.query(OrderItem).count() == 0

    def test_failure_after_insert_rolls_back(self, db_session, test_table, test_menu_item):
        tables = TableService(db_session)
        with patch.object(tables, "occupy", side_effect=RuntimeError("table write failed")):
            with pytest.raises(RuntimeError):
                OrderService(db_session, tables).create(OrderCreate.model_validate({
                    "table": test_table.id,
                    "items": [{"item": test_menu_item.id, "price": "250.00"}],
                    "total_amount": "250.00",
                }))
        assert db_session.query(Order).count() == 0
        assert db_session.query(OrderItem).count() == 0
        table = db_session.get(Table, test_table.id)
        assert table.status == "available"
        assert table.current_order_id is None

    def test_second_order_takes_over_table(self, db_session, test_order, test_table, test_menu_item):
        second = _create(db_session, test_table.id, test_menu_item.id)
        assert db_session.get(Table, test_table.id).current_order_id == second.id


class TestOrderReads:
    def test_reads_are_repeatable(self, db_session, test_order):
        service = OrderService(db_session)
        assert service.get_all() == service.get_all()
        assert service.get_by_id(test_order.id) == service.get_by_id(test_order.id)

    def test_get_by_table_and_status(self, db_session, test_order, test_table):
        service = OrderService(db_session)
        assert [o.id for o in service.get_by_table(test_table.id)] == [test_order.id]
        assert [o.id for o in service.get_by_status("pending")] == [test_order.id]
        assert service.get_by_status("served") == []

    def test_invalid_status_filter(self, db_session):
        with pytest.raises(ValidationError):
            OrderService(db_session).get_by_status("eaten")

    def test_invalid_status_filter_runs_no_query(self):
        db = MagicMock()
        with pytest.raises(ValidationError):
            OrderService(db).get_by_status("bogus")
        db.execute.assert_not_called()

    def test_get_missing(self, db_session):
        with pytest.raises(NotFoundError):
            OrderService(db_session).get_by_id(42)


class TestOrderUpdate:
    def test_items_are_replaced(self, db_session, test_order, test_menu_item):
        updated = OrderService(db_session).update(test_order.id, OrderUpdate.model_validate({
            "items": [
                {"item": test_menu_item.id, "quantity": 3, "price": "250.00"},
                {"item": test_menu_item.id, "price": "260.00", "customizations": [{"option_name": "Size"}]},
            ],
            "total_amount": "1010.00",
        }))
        assert [(i.quantity, i.price) for i in updated.items] == [
            (3, Decimal("250.00")),
            (1, Decimal("260.00")),
        ]
        assert updated.total_amount == Decimal("1010.00")
        # old line and its customization are gone
        assert db_session.query(OrderItem).count() == 2
        assert db_session.query(OrderItemCustomization).count() == 1

    def test_absent_fields_are_kept(self, db_session, test_order):
        updated = OrderService(db_session).update(
            test_order.id, OrderUpdate.model_validate({"payment_status": "paid"})
        )
        assert updated.payment_status == "paid"
        assert updated.total_amount == test_order.total_amount
        assert len(updated.items) == 1

    def test_empty_items_clear_every_line(self, db_session, test_order):
        updated = OrderService(db_session).update(test_order.id, OrderUpdate(items=[]))
        assert updated.items == []
        assert updated.total_amount == test_order.total_amount
        assert db_session.query(OrderItem).count() == 0
        assert db_session.query(OrderItemCustomization).count() == 0

    def test_invalid_payment_status(self, db_session, test_order):
        with pytest.raises(ValidationError):
            OrderService(db_session).update(
                test_order.id, OrderUpdate.model_validate({"payment_status": "refunded"})
            )


class TestOrderStatus:
    @pytest.mark.parametrize("status", ["complete", "cancelled"])
    def test_terminal_status_releases_table(self, db_session, test_order, test_table, status):
        OrderService(db_session).update_status(test_order.id, status)
        table = db_session.get(Table, test_table.id)
        assert table.status == "available"
        assert table.current_order_id is None

    def test_intermediate_status_keeps_table(self, db_session, test_order, test_table):
        order = OrderService(db_session).update_status(test_order.id, "preparing")
        assert order.status == "preparing"
        assert db_session.get(Table, test_table.id).status == "occupied"

    def test_release_only_when_table_points_at_order(self, db_session, test_order, test_table, test_menu_item):
        second = _create(db_session, test_table.id, test_menu_item.id)
        OrderService(db_session).update_status(test_order.id, "complete")
        table = db_session.get(Table, test_table.id)
        assert table.status == "occupied"
        assert table.current_order_id == second.id

    def test_terminal_orders_cannot_reopen(self, db_session, test_order):
        service = OrderService(db_session)
        service.update_status(test_order.id, "cancelled")
        with pytest.raises(ConflictError):
            service.update_status(test_order.id, "pending")

    def test_status_required_and_valid(self, db_session, test_order):
        service = OrderService(db_session)
        with pytest.raises(ValidationError):
            service.update_status(test_order.id, None)
        with pytest.raises(ValidationError):
            service.update_status(test_order.id, "eaten")


class TestOrderDelete:
    def test_delete_releases_table_and_cascades(self, db_session, test_order, test_table):
        OrderService(db_session).delete(test_order.id)
        assert db_session.get(Order, test_order.id) is None
        assert db_session.query(OrderItem).count() == 0
        assert db_session.query(OrderItemCustomization).count() == 0
        table = db_session.get(Table, test_table.id)
        assert table.status == "available"
        assert table.current_order_id is None

    def test_delete_leaves_table_on_newer_order(self, db_session, test_order, test_table, test_menu_item):
        second = _create(db_session, test_table.id, test_menu_item.id)
        OrderService(db_session).delete(test_order.id)
        assert db_session.get(Table, test_table.id).current_order_id == second.id

    def test_delete_missing(self, db_session):
        with pytest.raises(NotFoundError):
            OrderService(db_session).delete(123)


# ============== HTTP ==============

class TestOrderRoutes:
    def test_place_order(self, client, test_table, test_menu_item):
        res = client.post(f"{API}/orders", json={
            "table": test_table.id,
            "items": [{"item": test_menu_item.id, "quantity": 2, "price": 250}],
            "total_amount": 500,
            "payment_method": "online_payment",
        })
        assert res.status_code == 201
        order = res.json()["order"]
        assert order["table"]["table_number"] == 1
        assert order["total_amount"] == 500.0
        assert order["payment_method"] == "online_payment"
        assert order["items"][0]["item"]["name"] == "Chicken Momo"

    def test_place_order_missing_values(self, client, test_table):
        res = client.post(f"{API}/orders", json={"table": test_table.id})
        assert res.status_code == 400
        assert res.json() == {"success": False, "msg": "Please provide all required values"}

    def test_place_order_unknown_table(self, client, test_menu_item):
        res = client.post(f"{API}/orders", json={
            "table": 999,
            "items": [{"item": test_menu_item.id, "price": 250}],
            "total_amount": 250,
        })
        assert res.status_code == 404
        assert res.json()["success"] is False

    def test_list_and_get(self, client, test_order):
        res = client.get(f"{API}/orders")
        assert res.status_code == 200
        assert res.json()["count"] == 1

        res = client.get(f"{API}/orders/{test_order.id}")
        assert res.status_code == 200
        assert res.json()["order"]["order_number"] == test_order.order_number

    def test_get_missing(self, client):
        res = client.get(f"{API}/orders/999")
        assert res.status_code == 404

    def test_staff_reads_require_auth(self, client, test_order, test_table, staff_headers):
        assert client.get(f"{API}/orders/table/{test_table.id}").status_code == 401
        res = client.get(f"{API}/orders/table/{test_table.id}", headers=staff_headers)
        assert res.status_code == 200
        assert res.json()["count"] == 1

        res = client.get(f"{API}/orders/status/pending", headers=staff_headers)
        assert res.json()["count"] == 1
        assert client.get(f"{API}/orders/status/eaten", headers=staff_headers).status_code == 400

    def test_status_update(self, client, test_order, staff_headers):
        url = f"{API}/orders/{test_order.id}/status"
        assert client.patch(url, json={"status": "complete"}).status_code == 401

        res = client.patch(url, json={"status": "complete"}, headers=staff_headers)
        assert res.status_code == 200
        assert res.json()["order"]["status"] == "complete"
        assert res.json()["order"]["table"]["status"] == "available"

        res = client.patch(url, json={"status": "preparing"}, headers=staff_headers)
        assert res.status_code == 409

    def test_update_order(self, client, test_order, test_menu_item):
        res = client.patch(f"{API}/orders/{test_order.id}", json={
            "items": [{"item": test_menu_item.id, "quantity": 1, "price": 250}],
            "total_amount": 250,
        })
        assert res.status_code == 200
        order = res.json()["order"]
        assert len(order["items"]) == 1
        assert order["items"][0]["customizations"] == []

    def test_update_with_empty_items(self, client, test_order):
        res = client.patch(f"{API}/orders/{test_order.id}", json={"items": []})
        assert res.status_code == 200
        assert res.json()["order"]["items"] == []

    def test_delete_order(self, client, test_order):
        res = client.delete(f"{API}/orders/{test_order.id}")
        assert res.status_code == 200
        assert res.json() == {"success": True, "msg": "Order removed"}
        assert client.get(f"{API}/orders/{test_order.id}").status_code == 404

    def test_body_schema_errors_are_422(self, client):
        res = client.post(f"{API}/orders", json={"table": "not-a-number"})
        assert res.status_code == 422

    def test_out_of_range_ids_never_reach_the_database(self, client, test_menu_item):
        huge = 10**20
        assert client.get(f"{API}/orders/{huge}").status_code == 422
        res = client.post(f"{API}/orders", json={
            "table": huge,
            "items": [{"item": test_menu_item.id, "price": "250"}],
            "total_amount": "250",
        })
        assert res.status_code == 422
