from typing import Protocol

from app.config import settings
from app.integrations.mail_client import MailMessage, MailTransportProtocol, get_mail_transport
from app.models.order import OrderStatus
from app.observability import log_event
from app.schemas.snapshots import OrderSnapshot, ProductSnapshot

_STATUS_HEADLINES: dict[OrderStatus, str] = {
    OrderStatus.CONFIRMED: "Your order has been confirmed.",
    OrderStatus.PROCESSING: "Your order is being processed.",
    OrderStatus.SHIPPED: "Your order has been shipped.",
    OrderStatus.ACCEPTED: "A delivery agent has accepted your order.",
    OrderStatus.PICKED_UP: "Your order has been picked up by the delivery agent.",
    OrderStatus.OUT_FOR_DELIVERY: "Your order is out for delivery.",
    OrderStatus.DELIVERED: "Your order has been delivered.",
    OrderStatus.CANCELLED: "Your order has been cancelled.",
}


class OrderNotifierProtocol(Protocol):
    def send_order_confirmation(self, order: OrderSnapshot) -> None: ...

    def send_order_status_update(self, order: OrderSnapshot) -> None: ...

    def send_low_stock_alert(self, product: ProductSnapshot) -> None: ...

    def send_expiry_alert(self, product: ProductSnapshot) -> None: ...


def _money(value) -> str:
    return f"{value:.2f}"


def render_order_confirmation(order: OrderSnapshot, tracking_base_url: str) -> MailMessage:
    lines = [
        f"Dear {order.delivery_name or 'Customer'},",
        "",
        "Thank you for your order!",
        "",
        "Order Details:",
        f"Order Number: {order.order_number}",
        f"Total Amount: {_money(order.total_amount)}",
        f"Payment Mode: {order.payment_mode.value}",
        "",
        f"Delivery Window: {order.estimated_delivery_start} to {order.estimated_delivery_end}",
        "",
        f"Tracking ID: {order.tracking_id}",
        f"Track your order: {tracking_base_url.rstrip('/')}/{order.tracking_id}",
        "",
        "Items:",
    ]
    lines.extend(
        f"- {item.product_name} x {item.quantity} = {_money(item.total_price)}"
        for item in order.items
    )
    lines.extend(["", f"Thank you for shopping with {settings.app_name}!"])
    return MailMessage(
        to=order.delivery_email or "",
        subject=f"Order Confirmation - {order.order_number}",
        body="\n".join(lines),
    )


def render_order_status_update(order: OrderSnapshot, tracking_base_url: str) -> MailMessage:
    lines = [
        f"Dear {order.delivery_name or 'Customer'},",
        "",
        _STATUS_HEADLINES.get(order.status, f"Your order status is now {order.status.value}."),
        "",
        f"Order Number: {order.order_number}",
        f"Status: {order.status.value}",
    ]
    if order.status == OrderStatus.CANCELLED and order.cancellation_reason:
        lines.append(f"Reason: {order.cancellation_reason}")
    lines.extend(
        [
            f"Tracking ID: {order.tracking_id}",
            f"Track your order: {tracking_base_url.rstrip('/')}/{order.tracking_id}",
        ]
    )
    return MailMessage(
        to=order.delivery_email or "",
        subject=f"Order Status Update - {order.order_number}",
        body="\n".join(lines),
    )


def render_low_stock_alert(product: ProductSnapshot, admin_email: str) -> MailMessage:
    body = "\n".join(
        [
            "Low Stock Alert",
            "",
            f"Product: {product.name}",
            f"Current Stock: {product.stock_quantity}",
            f"SKU: {product.sku or '-'}",
            "",
            "Please restock this product soon.",
        ]
    )
    return MailMessage(to=admin_email, subject=f"Low Stock Alert - {product.name}", body=body)


def render_expiry_alert(product: ProductSnapshot, admin_email: str) -> MailMessage:
    body = "\n".join(
        [
            "Product Expiring Soon",
            "",
            f"Product: {product.name}",
            f"Expiry Date: {product.expiry_date.isoformat() if product.expiry_date else '-'}",
            f"Current Stock: {product.stock_quantity}",
            "",
            "Please take necessary action.",
        ]
    )
    return MailMessage(
        to=admin_email, subject=f"Product Expiring Soon - {product.name}", body=body
    )


class EmailOrderNotifier:
    def __init__(
        self,
        transport: MailTransportProtocol,
        admin_email: str,
        tracking_base_url: str,
    ) -> None:
        self.transport = transport
        self.admin_email = admin_email
        self.tracking_base_url = tracking_base_url

    def _deliver(self, message: MailMessage, *, order_id: int | None = None) -> None:
        if not message.to:
            log_event("notification_skipped_no_recipient", order_id=order_id)
            return
        self.transport.send(message)
        log_event(f"notification_sent subject={message.subject!r}", order_id=order_id)

    def send_order_confirmation(self, order: OrderSnapshot) -> None:
        self._deliver(render_order_confirmation(order, self.tracking_base_url), order_id=order.id)

    def send_order_status_update(self, order: OrderSnapshot) -> None:
        self._deliver(render_order_status_update(order, self.tracking_base_url), order_id=order.id)

    def send_low_stock_alert(self, product: ProductSnapshot) -> None:
        self._deliver(render_low_stock_alert(product, self.admin_email))

    def send_expiry_alert(self, product: ProductSnapshot) -> None:
        self._deliver(render_expiry_alert(product, self.admin_email))


def get_order_notifier() -> OrderNotifierProtocol:
    return EmailOrderNotifier(
        transport=get_mail_transport(),
        admin_email=settings.admin_email,
        tracking_base_url=settings.tracking_base_url,
    )
