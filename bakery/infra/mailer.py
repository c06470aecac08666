"""
Envoi d'emails transactionnels via SMTP (SSL ou STARTTLS).
send_email retourne False si l'envoi est désactivé ou non configuré; les erreurs SMTP remontent.
"""
from email.message import EmailMessage
from email.utils import formataddr
from html import escape
from typing import Any, Dict, Iterable, Optional
import logging
import smtplib
import ssl

from bakery.config import (
    BASE_URL,
    EMAIL_ENABLED,
    EMAIL_FROM,
    EMAIL_FROM_NAME,
    SMTP_HOST,
    SMTP_PASSWORD,
    SMTP_PORT,
    SMTP_USE_SSL,
    SMTP_USE_TLS,
    SMTP_USERNAME,
)

logger = logging.getLogger(__name__)

def send_email(to_email: str, subject: str, text_body: str, html_body: Optional[str] = None) -> bool:
    if not EMAIL_ENABLED:
        logger.info("Email désactivé (EMAIL_ENABLED=0), destinataire=%s", to_email)
        return False
    if not to_email or "@" not in to_email:
        logger.warning("Email non envoyé: destinataire invalide (%r)", to_email)
        return False
    if not SMTP_HOST or not EMAIL_FROM:
        logger.warning("Email non configuré: SMTP_HOST ou EMAIL_FROM/SMTP_USERNAME manquant")
        return False

    msg = EmailMessage()
    msg["From"] = formataddr((EMAIL_FROM_NAME, EMAIL_FROM))
    msg["To"] = to_email
    msg["Subject"] = subject
    msg.set_content(text_body or "")
    if html_body:
        msg.add_alternative(html_body, subtype="html")

    context = ssl.create_default_context()
    if SMTP_USE_SSL:
        with smtplib.SMTP_SSL(SMTP_HOST, SMTP_PORT, context=context) as server:
            if SMTP_USERNAME and SMTP_PASSWORD:
                server.login(SMTP_USERNAME, SMTP_PASSWORD)
            server.send_message(msg)
    else:
        with smtplib.SMTP(SMTP_HOST, SMTP_PORT) as server:
            server.ehlo()
            if SMTP_USE_TLS:
                server.starttls(context=context)
                server.ehlo()
            if SMTP_USERNAME and SMTP_PASSWORD:
                server.login(SMTP_USERNAME, SMTP_PASSWORD)
            server.send_message(msg)
    return True

def build_order_confirmation_email(
    *,
    order_id: int,
    customer_name: str,
    items: Iterable[Dict[str, Any]],
    subtotal: float,
    delivery_fee: float,
    total: float,
    delivery_address: str,
) -> tuple:
    """Retourne (subject, text, html) pour la confirmation d'une commande."""
    items = list(items)
    subject = f"{EMAIL_FROM_NAME} - Confirmation de commande #{order_id}"
    lines = [
        f"- {i['name']} x{i['quantity']}"
        + (f" ({i['flavorDetails']})" if i.get("flavorDetails") else "")
        + f": {i['total']:.2f}"
        for i in items
    ]
    text = (
        f"Bonjour {customer_name},\n\n"
        f"Merci pour votre commande #{order_id}.\n\n"
        + "\n".join(lines)
        + f"\n\nSous-total: {subtotal:.2f}\nLivraison: {delivery_fee:.2f}\nTotal: {total:.2f}\n"
        f"Adresse de livraison: {delivery_address}\n\n"
        f"Suivre la commande: {BASE_URL}/orders/{order_id}\n\n"
        f"- L'équipe {EMAIL_FROM_NAME}\n"
    )
    rows = "".join(
        f"<tr><td>{escape(str(i['name']))} x{i['quantity']}</td><td style=\"text-align:right;\">{i['total']:.2f}</td></tr>"
        for i in items
    )
    html = f"""\
<!doctype html>
<html>
  <body style="margin:0;padding:24px;font-family:Arial,sans-serif;color:#111111;">
    <p>Bonjour {escape(customer_name)},</p>
    <p>Merci pour votre commande <strong>#{order_id}</strong>.</p>
    <table role="presentation" width="100%" cellspacing="0" cellpadding="4" style="max-width:460px;">
      {rows}
      <tr><td>Sous-total</td><td style="text-align:right;">{subtotal:.2f}</td></tr>
      <tr><td>Livraison</td><td style="text-align:right;">{delivery_fee:.2f}</td></tr>
      <tr><td><strong>Total</strong></td><td style="text-align:right;"><strong>{total:.2f}</strong></td></tr>
    </table>
    <p>Adresse de livraison: {escape(delivery_address)}</p>
  </body>
</html>
"""
    return subject, text, html

def send_order_confirmation_email(to_email: str, **order: Any) -> bool:
    subject, text, html = build_order_confirmation_email(**order)
    return send_email(to_email, subject, text, html)
