import pytest

from bag_planner.scheduling.orders import Order, consolidate_by_sku, validate_orders


def test_cartons_convert_to_bags():
    assert Order(order_id="O", quantity=5).base_quantity == 5000
    assert Order(order_id="O", quantity=5, bags_per_carton=250).base_quantity == 1250
    assert Order(order_id="O", quantity=5, unit="bags").base_quantity == 5


def test_handle_type_normalized_and_defaulted():
    assert Order(order_id="O", quantity=1, handle_type=" twisted handle ").handle_type == "TWISTED HANDLE"
    assert Order(order_id="O", quantity=1, handle_type="").handle_type == "FLAT HANDLE"


def test_order_is_immutable():
    o = Order(order_id="O", quantity=1)
    with pytest.raises(Exception):
        o.quantity = 2


def test_validate_orders_splits_malformed_rows():
    rows = [
        {"order_id": "ok", "quantity": 10},
        {"order_id": "neg", "quantity": -5},
        {"order_id": "missing"},
        {"order_id": "rope", "quantity": 10, "handle_type": "ROPE HANDLE"},
        {"quantity": 3, "unit": "bags"},
    ]
    valid, rejected = validate_orders(rows)
    assert [o.order_id for o in valid] == ["ok", "ORDER_5"]
    assert [o.sequence for o in valid] == [0, 4]
    assert {r.order_id for r in rejected} == {"neg", "missing", "rope"}
    by_id = {r.order_id: r for r in rejected}
    assert "quantity" in by_id["missing"].reason
    assert "handle" in by_id["rope"].reason.lower()
    assert by_id["neg"].index == 1


def test_consolidate_by_sku_merges_into_bags():
    orders = [
        Order(order_id="a", sku="X", quantity=2, delivery_days=10),
        Order(order_id="b", sku="Y", quantity=100, unit="bags"),
        Order(order_id="c", sku="X", quantity=500, unit="bags", delivery_days=5),
    ]
    merged = consolidate_by_sku(orders)
    assert [o.order_id for o in merged] == ["a", "b"]
    assert merged[0].unit == "bags"
    assert merged[0].base_quantity == 2500
    assert merged[0].delivery_days == 5
    assert [o.sequence for o in merged] == [0, 1]
