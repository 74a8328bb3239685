"""
Unit Tests for the Cart aggregate and MessageTemplate rendering.
"""

from datetime import UTC, datetime, timedelta

import pytest

from app.core.domain import EntityNotFoundException, InvalidOperationException
from app.domains.retention.domain.entities import (
    Cart,
    CartItem,
    ChannelContent,
    Customer,
    MessageTemplate,
)
from app.domains.retention.domain.value_objects import CartStatus, RecoveryResponse

NOW = datetime(2024, 6, 12, 15, 0, tzinfo=UTC)


class TestCartTotals:
    """total_value always mirrors the items."""

    def test_total_computed_on_creation(self):
        cart = Cart(id="c", items=[CartItem("p-1", 2, 50.0), CartItem("p-2", 1, 25.5)])
        assert cart.total_value == 125.5

    def test_add_item_merges_quantities(self):
        cart = Cart(id="c")
        cart.add_item("p-1", 1, 10.0, now=NOW)
        cart.add_item("p-1", 2, 10.0, now=NOW)

        assert cart.item_count == 1
        assert cart.items[0].quantity == 3
        assert cart.total_value == 30.0
        assert cart.last_activity == NOW

    def test_remove_and_update(self):
        cart = Cart(id="c", items=[CartItem("p-1", 2, 50.0), CartItem("p-2", 1, 20.0)])
        cart.update_quantity("p-2", 3)
        assert cart.total_value == 160.0

        cart.remove_item("p-1")
        assert cart.total_value == 60.0

    def test_update_missing_item_raises(self):
        cart = Cart(id="c")
        with pytest.raises(EntityNotFoundException):
            cart.update_quantity("nope", 1)

    def test_quantity_must_be_positive(self):
        with pytest.raises(ValueError):
            CartItem("p-1", 0, 10.0)


class TestCartLifecycle:
    """Abandonment, recovery and conversion transitions."""

    def _idle_cart(self, minutes: int) -> Cart:
        return Cart(id="c", items=[CartItem("p-1", 1, 10.0)], last_activity=NOW - timedelta(minutes=minutes))

    def test_abandonment_candidate_requires_idle_active_non_empty(self):
        threshold = timedelta(minutes=30)

        assert self._idle_cart(31).is_abandonment_candidate(threshold, NOW)
        assert not self._idle_cart(30).is_abandonment_candidate(threshold, NOW)
        assert not Cart(id="empty", last_activity=NOW - timedelta(hours=5)).is_abandonment_candidate(threshold, NOW)

        abandoned = self._idle_cart(60)
        abandoned.abandon(NOW)
        assert not abandoned.is_abandonment_candidate(threshold, NOW)

    def test_abandon_only_from_active(self):
        cart = self._idle_cart(60)

        assert cart.abandon(NOW) is True
        assert cart.status == CartStatus.ABANDONED
        assert cart.abandoned_at == NOW
        assert cart.abandon(NOW) is False

    def test_recover_resets_abandonment(self):
        cart = self._idle_cart(60)
        cart.abandon(NOW)

        assert cart.recover(NOW + timedelta(hours=2)) is True
        assert cart.status == CartStatus.ACTIVE
        assert cart.abandoned_at is None
        assert cart.last_activity == NOW + timedelta(hours=2)

    def test_converted_cart_cannot_convert_again(self):
        cart = self._idle_cart(60)
        cart.convert()

        with pytest.raises(InvalidOperationException):
            cart.convert()
        assert cart.status.is_terminal()


class TestRecoveryLog:
    """Recovery attempt records and responses."""

    def test_converted_response_converts_cart(self):
        cart = Cart(id="c", items=[CartItem("p-1", 1, 10.0)])
        cart.abandon(NOW)
        record = cart.log_recovery_attempt("email", "tpl-1", message_id="m-1", now=NOW)

        assert cart.update_recovery_response(record.id, RecoveryResponse.CONVERTED) is True
        assert record.response == RecoveryResponse.CONVERTED
        assert cart.status == CartStatus.CONVERTED

    def test_unknown_attempt_is_reported(self):
        cart = Cart(id="c")
        assert cart.update_recovery_response("missing", RecoveryResponse.OPENED) is False


class TestCustomerChannels:
    """Contact preferences gate channels; only an explicit opt-out blocks."""

    def test_allows_channel(self):
        customer = Customer(id="c", contact_preferences={"email": True, "whatsapp": False})

        assert customer.allows_channel("email")
        assert not customer.allows_channel("whatsapp")
        assert customer.allows_channel("sms") is True

    def test_contact_for(self):
        customer = Customer(id="c", email="a@b.c", phone="+54911")

        assert customer.contact_for("email") == "a@b.c"
        assert customer.contact_for("whatsapp") == "+54911"
        assert customer.contact_for("pigeon") is None


class TestMessageTemplate:
    """Placeholder substitution."""

    def test_render_replaces_known_variables(self):
        template = MessageTemplate(
            id="t",
            channels=["email"],
            content={"email": ChannelContent(body="Hola {{customerName}}, total {{cartTotal}}", subject="{{customerName}}")},
        )

        rendered = template.render("email", {"customerName": "Ana", "cartTotal": "10.00"})

        assert rendered == {"body": "Hola Ana, total 10.00", "subject": "Ana"}

    def test_unknown_or_empty_placeholders_are_left_untouched(self):
        text = MessageTemplate.replace_variables("{{a}} {{b}} {{c}}", {"a": 1, "b": ""})
        assert text == "1 {{b}} {{c}}"

    def test_render_missing_channel_is_empty(self):
        assert MessageTemplate(id="t").render("whatsapp", {}) == {}
