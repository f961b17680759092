import re
from decimal import Decimal

from storefront.repos.gateway import DUPLICATE_KEY, NO_ROWS, UNDEFINED_COLUMN, UNDEFINED_TABLE, UNKNOWN_FUNCTION


class TestSelect:
    def test_single_reports_no_rows(self, gateway):
        result = gateway.select("products", {"id": "missing"}, single=True)

        assert result.data is None
        assert result.error.code == NO_ROWS

    def test_filters_and_orders(self, gateway, add_product):
        add_product("P1", 100)
        add_product("P2", 300)
        add_product("P3", 200)

        result = gateway.select("products", order_by=[("price", True)], limit=2)

        assert result.ok
        assert [row["id"] for row in result.data] == ["P2", "P3"]
        assert result.data[0]["price"] == Decimal("300")

    def test_unknown_table(self, gateway):
        result = gateway.select("wishlists")

        assert result.error.code == UNDEFINED_TABLE

    def test_unknown_column(self, gateway):
        result = gateway.select("products", {"colour": "red"})

        assert result.error.code == UNDEFINED_COLUMN


class TestWrites:
    def test_upsert_replaces_quantity_on_conflict(self, gateway):
        first = gateway.upsert(
            "cart_items", {"user_id": "u1", "product_id": "P1", "quantity": 2}, on_conflict=("user_id", "product_id")
        )
        second = gateway.upsert(
            "cart_items", {"user_id": "u1", "product_id": "P1", "quantity": 3}, on_conflict=("user_id", "product_id")
        )

        assert first.ok and second.ok
        assert second.data["id"] == first.data["id"]
        assert second.data["quantity"] == 3
        assert len(gateway.select("cart_items", {"user_id": "u1"}).data) == 1

    def test_duplicate_key_is_reported(self, gateway):
        row = {
            "order_number": "ORD-2026-000001",
            "total_amount": Decimal("10"),
            "status": "pending",
            "shipping_address": {},
        }
        assert gateway.insert("orders", row).ok

        result = gateway.insert("orders", row)

        assert result.error.code == DUPLICATE_KEY
        assert result.error.is_duplicate

    def test_insert_unknown_column(self, gateway):
        result = gateway.insert("cart_items", {"user_id": "u1", "product_id": "P1", "quantity": 1, "colour": "red"})

        assert result.error.code == UNDEFINED_COLUMN

    def test_update_and_delete(self, gateway):
        created = gateway.upsert(
            "cart_items", {"user_id": "u1", "product_id": "P1", "quantity": 1}, on_conflict=("user_id", "product_id")
        ).data

        updated = gateway.update("cart_items", {"quantity": 4}, {"id": created["id"]}, single=True)
        deleted = gateway.delete("cart_items", {"user_id": "u1"})

        assert updated.data["quantity"] == 4
        assert deleted.data == {"deleted": 1}
        assert gateway.select("cart_items").data == []


class TestRpc:
    def test_generate_order_number(self, gateway):
        result = gateway.rpc("generate_order_number")

        assert result.ok
        assert re.fullmatch(r"ORD-\d{4}-000001", result.data)

    def test_order_numbers_are_not_reused(self, gateway):
        first = gateway.rpc("generate_order_number").data
        second = gateway.rpc("generate_order_number").data

        assert first != second
        assert second.endswith("000002")

    def test_unknown_function(self, gateway):
        result = gateway.rpc("delete_collection_and_update_products")

        assert result.error.code == UNKNOWN_FUNCTION
