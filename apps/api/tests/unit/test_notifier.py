from datetime import date
from decimal import Decimal

from app.integrations.notifier import (
    EmailOrderNotifier,
    render_low_stock_alert,
    render_order_confirmation,
    render_order_status_update,
)
from app.models.order import OrderStatus, PaymentMode
from app.schemas.snapshots import OrderItemSnapshot, OrderSnapshot, ProductSnapshot


class RecordingTransport:
    def __init__(self) -> None:
        self.sent = []

    def send(self, message) -> None:
        self.sent.append(message)


def _order(**overrides) -> OrderSnapshot:
    data = dict(
        id=3,
        order_number="ORD-1700000000000-0042",
        tracking_id="TRK-0A1B2C3D",
        status=OrderStatus.CONFIRMED,
        payment_mode=PaymentMode.UPI,
        total_amount=Decimal("250"),
        delivery_name="Asha Rao",
        delivery_email="asha@example.com",
        delivery_address="12 MG Road",
        estimated_delivery_start=date(2026, 10, 21),
        estimated_delivery_end=date(2026, 10, 24),
        items=[
            OrderItemSnapshot(
                product_id=1,
                product_name="Widget X",
                quantity=2,
                unit_price=Decimal("100"),
                total_price=Decimal("200"),
            )
        ],
    )
    data.update(overrides)
    return OrderSnapshot(**data)


def test_confirmation_lists_order_facts_and_items():
    message = render_order_confirmation(_order(), "https://shop.test/track/")

    assert message.to == "asha@example.com"
    assert message.subject == "Order Confirmation - ORD-1700000000000-0042"
    assert "Dear Asha Rao," in message.body
    assert "Total Amount: 250.00" in message.body
    assert "Payment Mode: UPI" in message.body
    assert "Delivery Window: 2026-10-21 to 2026-10-24" in message.body
    assert "Track your order: https://shop.test/track/TRK-0A1B2C3D" in message.body
    assert "- Widget X x 2 = 200.00" in message.body


def test_status_update_includes_cancellation_reason():
    message = render_order_status_update(
        _order(status=OrderStatus.CANCELLED, cancellation_reason="Out of area"),
        "https://shop.test/track",
    )

    assert message.subject == "Order Status Update - ORD-1700000000000-0042"
    assert "Your order has been cancelled." in message.body
    assert "Reason: Out of area" in message.body


def test_low_stock_alert_goes_to_admin():
    message = render_low_stock_alert(
        ProductSnapshot(id=1, name="Widget Y", sku="WY-1", stock_quantity=2), "ops@shop.test"
    )

    assert message.to == "ops@shop.test"
    assert message.subject == "Low Stock Alert - Widget Y"
    assert "Current Stock: 2" in message.body


def test_expiry_alert_carries_date_and_stock():
    transport = RecordingTransport()
    notifier = EmailOrderNotifier(transport, "ops@shop.test", "https://shop.test/track")

    notifier.send_expiry_alert(
        ProductSnapshot(id=4, name="Milk", stock_quantity=12, expiry_date=date(2026, 10, 25))
    )

    [message] = transport.sent
    assert message.to == "ops@shop.test"
    assert message.subject == "Product Expiring Soon - Milk"
    assert "Expiry Date: 2026-10-25" in message.body
    assert "Current Stock: 12" in message.body


def test_notifier_skips_orders_without_email():
    transport = RecordingTransport()
    notifier = EmailOrderNotifier(transport, "ops@shop.test", "https://shop.test/track")

    notifier.send_order_confirmation(_order(delivery_email=None))
    notifier.send_order_status_update(_order(status=OrderStatus.SHIPPED))

    assert [message.subject for message in transport.sent] == [
        "Order Status Update - ORD-1700000000000-0042"
    ]
