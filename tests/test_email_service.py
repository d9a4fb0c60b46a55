"""Tests for the booking email templates."""
from datetime import date
from types import SimpleNamespace

import pytest

from booking_core.services.email.email_service import EmailService

ANCHOR = '<a href="http://evil.test">Click</a>'


@pytest.fixture
def sent(monkeypatch):
    messages = []

    def capture(to_email, subject, html_content, plain_text=None, cc=None):
        messages.append({"to": to_email, "html": html_content, "text": plain_text})
        return True

    monkeypatch.setattr(EmailService, "send_email", staticmethod(capture))
    return messages


def make_parts(customer_name=ANCHOR, service_name="Haircut", notes=None):
    booking = SimpleNamespace(
        id="b-1",
        customer_name=customer_name,
        customer_email="ada@lovelace.io",
        customer_phone="<b>555</b>",
        booking_date=date(2030, 1, 7),
        booking_time="09:00",
        booking_source="voice",
        notes=notes,
    )
    service = SimpleNamespace(name=service_name, duration=60)
    business = SimpleNamespace(name="Fade & Co", email="owner@fadestreet.io", phone_number="+15550001111")
    return booking, service, business


class TestOwnerNotice:

    def test_customer_fields_are_escaped(self, sent):
        EmailService.send_owner_booking_notice(*make_parts(notes="<script>x()</script>"))

        html = sent[0]["html"]
        assert ANCHOR not in html
        assert "&lt;a href=&quot;http://evil.test&quot;&gt;Click&lt;/a&gt;" in html
        assert "<b>555</b>" not in html
        assert "<script>" not in html
        assert "Fade &amp; Co" in html
        assert sent[0]["to"] == "owner@fadestreet.io"

    def test_plain_text_keeps_raw_values(self, sent):
        EmailService.send_owner_booking_notice(*make_parts())
        assert ANCHOR in sent[0]["text"]


class TestCustomerConfirmation:

    def test_customer_and_service_names_are_escaped(self, sent):
        EmailService.send_booking_confirmation(*make_parts(service_name='<img src="x">'))

        html = sent[0]["html"]
        assert ANCHOR not in html
        assert '<img src="x">' not in html
        assert "&lt;img src=&quot;x&quot;&gt;" in html
        assert sent[0]["to"] == "ada@lovelace.io"
