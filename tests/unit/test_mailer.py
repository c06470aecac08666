from unittest.mock import MagicMock

from bakery.infra import mailer

def test_disabled_email_is_skipped(monkeypatch):
    monkeypatch.setattr(mailer, "EMAIL_ENABLED", False)
    smtp = MagicMock()
    monkeypatch.setattr(mailer.smtplib, "SMTP", smtp)
    assert mailer.send_email("a@example.com", "s", "t") is False
    smtp.assert_not_called()

def test_missing_host_is_skipped(monkeypatch):
    monkeypatch.setattr(mailer, "EMAIL_ENABLED", True)
    monkeypatch.setattr(mailer, "SMTP_HOST", "")
    assert mailer.send_email("a@example.com", "s", "t") is False

def test_starttls_send(monkeypatch):
    monkeypatch.setattr(mailer, "EMAIL_ENABLED", True)
    monkeypatch.setattr(mailer, "SMTP_HOST", "smtp.example.com")
    monkeypatch.setattr(mailer, "EMAIL_FROM", "shop@example.com")
    monkeypatch.setattr(mailer, "SMTP_USE_SSL", False)
    monkeypatch.setattr(mailer, "SMTP_USE_TLS", True)
    monkeypatch.setattr(mailer, "SMTP_USERNAME", "user")
    monkeypatch.setattr(mailer, "SMTP_PASSWORD", "pw")
    server = MagicMock()
    smtp = MagicMock()
    smtp.return_value.__enter__.return_value = server
    monkeypatch.setattr(mailer.smtplib, "SMTP", smtp)

    assert mailer.send_email("a@example.com", "Sujet", "Corps", "<p>Corps</p>") is True
    server.starttls.assert_called_once()
    server.login.assert_called_once_with("user", "pw")
    msg = server.send_message.call_args.args[0]
    assert msg["To"] == "a@example.com"
    assert msg["Subject"] == "Sujet"

def test_order_confirmation_content():
    subject, text, html = mailer.build_order_confirmation_email(
        order_id=7,
        customer_name="Mona <script>",
        items=[{"name": "Large Pack", "quantity": 1, "total": 155.0, "flavorDetails": "Chocolate Chip (3x)"}],
        subtotal=155.0,
        delivery_fee=30.0,
        total=185.0,
        delivery_address="3 Tahrir Square",
    )
    assert "#7" in subject
    assert "Large Pack x1 (Chocolate Chip (3x)): 155.00" in text
    assert "Total: 185.00" in text
    assert "<script>" not in html
