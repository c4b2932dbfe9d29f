"""
Serviço de envio de emails.

Por enquanto, apenas loga o email. Pode ser expandido para usar SMTP, SendGrid, AWS SES, etc.
Todas as funções retornam True/False e nunca levantam exceção: quem chama
(rotas via BackgroundTasks, worker) não deve falhar por causa de email.
"""
import logging
import os
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from app.lib.tenant_format import format_date_for_tenant, format_money

logger = logging.getLogger(__name__)


def _app_url(app_url: Optional[str] = None) -> str:
    return app_url or os.getenv("APP_URL", "http://localhost:3000")


def _send(to_email: str, subject: str, body: str, kind: str) -> bool:
    try:
        if not to_email:
            logger.warning(f"Email '{kind}' sem destinatário; ignorado")
            return False
        logger.info(f"Email '{kind}' enviado para {to_email}")
        logger.info(f"Assunto: {subject}")
        logger.debug(f"Corpo:\n{body}")
        return True
    except Exception as e:
        logger.error(f"Erro ao enviar email '{kind}' para {to_email}: {e}", exc_info=True)
        return False


def _lines(items: Iterable[dict], currency: str) -> str:
    return "\n".join(
        f"- {item['product_name']} x{item['quantity']}: {format_money(item['total'], currency)}"
        for item in items
    )


def send_order_placed(
    to_email: str,
    customer_name: str,
    store_name: str,
    order_number: str,
    items: list[dict],
    total_amount: Decimal,
    currency: str = "KES",
) -> bool:
    """Confirmação de pedido para o cliente."""
    body = f"""
Hi {customer_name},

Thank you for your order at {store_name}!

Order number: {order_number}
{_lines(items, currency)}

Total: {format_money(total_amount, currency)}

We will let you know when your order ships.
    """.strip()
    return _send(to_email, f"Order confirmation {order_number}", body, "order_placed")


def send_new_order_alert(
    to_email: str,
    store_name: str,
    order_number: str,
    customer_name: str,
    total_amount: Decimal,
    currency: str = "KES",
) -> bool:
    """Aviso de novo pedido para a loja."""
    body = f"""
New order {order_number} received on {store_name}.

Customer: {customer_name}
Total: {format_money(total_amount, currency)}
    """.strip()
    return _send(to_email, f"New order {order_number}", body, "new_order_alert")


def send_order_shipped(
    to_email: str,
    customer_name: str,
    store_name: str,
    order_number: str,
    tracking_number: Optional[str] = None,
) -> bool:
    tracking = f"\nTracking number: {tracking_number}" if tracking_number else ""
    body = f"""
Hi {customer_name},

Your order {order_number} from {store_name} has shipped.{tracking}
    """.strip()
    return _send(to_email, f"Your order {order_number} has shipped", body, "order_shipped")


def send_order_delivered(to_email: str, customer_name: str, store_name: str, order_number: str) -> bool:
    body = f"""
Hi {customer_name},

Your order {order_number} from {store_name} has been delivered. Enjoy!
    """.strip()
    return _send(to_email, f"Your order {order_number} was delivered", body, "order_delivered")


def send_order_cancelled(
    to_email: str,
    customer_name: str,
    store_name: str,
    order_number: str,
    reason: str,
    refund_amount: Optional[Decimal] = None,
    currency: str = "KES",
) -> bool:
    """Cancelamento. `refund_amount` só é informado quando um pedido pago foi reembolsado."""
    refund = ""
    if refund_amount is not None:
        refund = f"\nA refund of {format_money(refund_amount, currency)} will be processed."
    body = f"""
Hi {customer_name},

Your order {order_number} from {store_name} has been cancelled.
Reason: {reason}{refund}
    """.strip()
    return _send(to_email, f"Your order {order_number} was cancelled", body, "order_cancelled")


def send_customer_welcome(
    to_email: str,
    customer_name: str,
    store_name: str,
    verification_token: Optional[str] = None,
    app_url: Optional[str] = None,
) -> bool:
    verify = ""
    if verification_token:
        verify = f"\nVerify your email: {_app_url(app_url)}/verify-email?token={verification_token}"
    body = f"""
Hi {customer_name},

Welcome to {store_name}!{verify}
    """.strip()
    return _send(to_email, f"Welcome to {store_name}", body, "customer_welcome")


def send_password_reset(
    to_email: str,
    name: str,
    reset_token: str,
    store_name: Optional[str] = None,
    app_url: Optional[str] = None,
) -> bool:
    where = store_name or "DukaNest"
    body = f"""
Hi {name},

We received a request to reset your {where} password.
Reset it here: {_app_url(app_url)}/reset-password?token={reset_token}

If you did not request this, ignore this email.
    """.strip()
    return _send(to_email, "Reset your password", body, "password_reset")


def send_ticket_reply(
    to_email: str,
    name: str,
    ticket_id: int,
    subject: str,
    message: str,
) -> bool:
    body = f"""
Hi {name},

There is a new reply on your support ticket #{ticket_id} ({subject}):

{message}
    """.strip()
    return _send(to_email, f"Re: [Ticket #{ticket_id}] {subject}", body, "ticket_reply")


def send_form_submission(to_email: str, form_title: str, store_name: str, data: dict) -> bool:
    fields = "\n".join(f"{key}: {value}" for key, value in data.items())
    body = f"""
New submission for "{form_title}" on {store_name}:

{fields}
    """.strip()
    return _send(to_email, f"New form submission: {form_title}", body, "form_submission")


def send_tenant_welcome(
    to_email: str,
    admin_name: str,
    store_name: str,
    subdomain: str,
    root_domain: Optional[str] = None,
) -> bool:
    root_domain = root_domain or os.getenv("ROOT_DOMAIN", "dukanest.local")
    body = f"""
Hi {admin_name},

Your store {store_name} is ready at https://{subdomain}.{root_domain}

Log in to the dashboard to add your first products.
    """.strip()
    return _send(to_email, f"Welcome to DukaNest, {store_name}!", body, "tenant_welcome")


def send_payment_reminder(
    to_email: str,
    store_name: str,
    plan_name: str,
    days_left: int,
    amount: Decimal,
    currency: str = "USD",
    expire_date: Optional[date] = None,
    locale: str = "",
) -> bool:
    expires_on = f" on {format_date_for_tenant(expire_date, locale)}" if expire_date else ""
    body = f"""
Your {plan_name} subscription for {store_name} expires in {days_left} day(s){expires_on}.

Renew now ({format_money(amount, currency)}) to keep your store online.
    """.strip()
    return _send(to_email, f"Your subscription expires in {days_left} day(s)", body, "payment_reminder")


def send_notification_digest(to_email: str, store_name: str, notifications: list[dict], app_url: Optional[str] = None) -> bool:
    """Resumo periódico de avisos do painel (pagamentos pendentes, estoque baixo)."""
    lines = "\n".join(f"- {n['title']}: {n['message']}" for n in notifications)
    body = f"""
Here is what needs your attention at {store_name}:

{lines}

Open your dashboard: {_app_url(app_url)}/dashboard
    """.strip()
    return _send(to_email, f"{store_name}: {len(notifications)} notification(s)", body, "notification_digest")
