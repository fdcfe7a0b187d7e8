"""
Notification Dispatcher — best-effort email about order lifecycle events.

Nothing here may fail an order operation: send() returns False instead of
raising, and OrderService schedules it as a detached task after the order
write has succeeded. Messages are plain text; the transport is SMTP via the
standard library, run on the shared thread pool so the event loop never
blocks on the mail server.

When EMAIL_USER / EMAIL_PASS are not set there is no transport and every
send() is a no-op returning False.
"""
import logging
import smtplib
from email.message import EmailMessage
from email.utils import formataddr
from typing import Optional, Protocol

from domain.enums import NotificationKind, OrderStatus
from domain.order import Order
from exceptions import NotificationError
from services.async_executor import SMTP_POOL, run_blocking

logger = logging.getLogger(__name__)


class EmailTransport(Protocol):
    async def send(self, message: EmailMessage) -> None:
        """Deliver the message or raise NotificationError."""


class SmtpTransport:
    """STARTTLS + login SMTP client (Gmail by default)."""

    def __init__(self, host: str, port: int, username: str, password: str, timeout: float = 15.0) -> None:
        self.host = host
        self.port = port
        self.username = username
        self._password = password
        self.timeout = timeout

    def _send_sync(self, message: EmailMessage) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
            server.starttls()
            server.login(self.username, self._password)
            server.send_message(message)

    async def send(self, message: EmailMessage) -> None:
        try:
            await run_blocking(self._send_sync, message, pool=SMTP_POOL)
        except (smtplib.SMTPException, OSError) as e:
            raise NotificationError(f"SMTP send to {message['To']} failed: {e}") from e


# ── Templates ───────────────────────────────────────────────────────

def _fmt_time(value) -> str:
    return value.strftime("%Y-%m-%d %H:%M UTC") if value else "N/A"


def render_message(
    kind: NotificationKind,
    order: Order,
    *,
    business_name: str,
    business_number: str = "",
    old_status: Optional[OrderStatus] = None,
    dashboard_url: str = "",
) -> tuple[str, str]:
    """Return (subject, plain-text body) for a notification kind."""
    if kind == NotificationKind.NEW_ORDER_ADMIN:
        subject = f"🔔 New Order #{order.id} - {business_name}"
        lines = [
            "New order received.",
            "",
            f"Order ID: {order.id}",
            f"Service:  {order.service}",
            f"Amount:   KSH {order.price}",
            f"Status:   {order.status.label}",
            "",
            f"Customer: {order.customer_name}",
            f"Phone:    {order.customer_phone}",
            f"Address:  {order.address}",
        ]
        if order.notes:
            lines.append(f"Notes:    {order.notes}")
        lines += [
            "",
            "Customer should send payment to:",
            f"  Phone:     {business_number or 'N/A'}",
            f"  Amount:    KSH {order.price}",
            f"  Reference: {order.id}",
            "",
            'Next steps: wait for M-Pesa payment confirmation, then mark the order "Paid".',
        ]
        if dashboard_url:
            lines.append(f"Admin dashboard: {dashboard_url}")
        lines.append(f"Order created at: {_fmt_time(order.created_at)}")

    elif kind == NotificationKind.PAYMENT_CONFIRMED:
        subject = f"✅ Payment Confirmed - Order #{order.id}"
        lines = [
            f"Payment confirmed. Thank you for choosing {business_name}.",
            "",
            f"Order ID:     {order.id}",
            f"Service:      {order.service}",
            f"Amount Paid:  KSH {order.price}",
            f"Payment Time: {_fmt_time(order.paid_at)}",
        ]
        if order.mpesa_code:
            lines.append(f"M-Pesa Code:  {order.mpesa_code}")

    elif kind == NotificationKind.ORDER_STATUS_UPDATE:
        subject = f"📋 Order Update - {order.id} - {order.status.label}"
        previous = old_status.label if old_status else "N/A"
        lines = [
            f"Hello {order.customer_name},",
            "",
            f"Your order #{order.id} has a new status.",
            "",
            f"Service:         {order.service}",
            f"Previous Status: {previous}",
            f"New Status:      {order.status.label}",
            f"Updated:         {_fmt_time(order.updated_at)}",
        ]
        if order.admin_notes:
            lines += ["", f"Note from {business_name}: {order.admin_notes}"]

    else:
        raise ValueError(f"Unknown notification kind: {kind}")

    lines += ["", f"{business_name} - Clean Clothes, Cleaner Planet"]
    return subject, "\n".join(lines)


# ── Dispatcher ──────────────────────────────────────────────────────

class NotificationDispatcher:
    def __init__(
        self,
        transport: Optional[EmailTransport],
        *,
        sender_address: str = "",
        business_name: str = "EcoSpin Laundry",
        business_number: str = "",
        admin_email: str = "",
        dashboard_url: str = "",
    ) -> None:
        self._transport = transport
        self.sender_address = sender_address
        self.business_name = business_name
        self.business_number = business_number
        self.admin_email = admin_email
        self.dashboard_url = dashboard_url

    @property
    def configured(self) -> bool:
        return self._transport is not None

    async def send(
        self,
        recipient: str,
        kind: NotificationKind,
        order: Order,
        old_status: Optional[OrderStatus] = None,
    ) -> bool:
        """Send one notification. Returns success; never raises."""
        if self._transport is None:
            logger.debug(f"Email not configured - skipping {kind.value} for {order.id}")
            return False
        if not recipient:
            logger.warning(f"⚠️  No recipient for {kind.value} email ({order.id}) - skipping")
            return False

        try:
            subject, body = render_message(
                kind,
                order,
                business_name=self.business_name,
                business_number=self.business_number,
                old_status=old_status,
                dashboard_url=self.dashboard_url,
            )
            message = EmailMessage()
            message["Subject"] = subject
            message["From"] = formataddr((self.business_name, self.sender_address))
            message["To"] = recipient
            message.set_content(body)
            await self._transport.send(message)
        except Exception as e:
            logger.error(f"❌ Email send failed ({kind.value}, {order.id}): {e}")
            return False

        logger.info(f"📧 Email sent to {recipient}: {subject}")
        return True

    async def notify_admin(
        self,
        kind: NotificationKind,
        order: Order,
        old_status: Optional[OrderStatus] = None,
    ) -> bool:
        return await self.send(self.admin_email, kind, order, old_status)


def build_dispatcher(settings) -> NotificationDispatcher:
    """Dispatcher with an SMTP transport when email credentials are configured."""
    transport = None
    if settings.email_configured:
        transport = SmtpTransport(
            settings.smtp_host,
            settings.smtp_port,
            settings.email_user,
            settings.email_pass,
            timeout=settings.smtp_timeout_seconds,
        )
    else:
        logger.warning("⚠️  Email not configured. Set EMAIL_USER and EMAIL_PASS in .env")
    return NotificationDispatcher(
        transport,
        sender_address=settings.email_user,
        business_name=settings.business_name,
        business_number=settings.business_number,
        admin_email=settings.admin_email,
        dashboard_url=f"{settings.public_base_url.rstrip('/')}/admin.html",
    )
