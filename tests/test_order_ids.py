"""Order id generation and the legacy-tolerant lookup chain."""

from __future__ import annotations

from laundry.ordering.ids import ORDER_ID_PATTERN, generate_order_id, resolve_order_id


def test_generated_ids_match_the_current_scheme():
    for _ in range(50):
        assert ORDER_ID_PATTERN.match(generate_order_id())


class TestResolveOrderId:
    known = ["LD-12345", "ORD7654321", "ld-555", "LD-000777000"]

    def test_exact_match_wins(self):
        assert resolve_order_id("LD-12345", self.known) == "LD-12345"

    def test_case_insensitive(self):
        assert resolve_order_id("LD-555", self.known) == "ld-555"
        assert resolve_order_id("ord7654321", self.known) == "ORD7654321"

    def test_prefix_swap(self):
        assert resolve_order_id("ORD12345", self.known) == "LD-12345"
        assert resolve_order_id("ord12345", self.known) == "LD-12345"
        assert resolve_order_id("LD-7654321", self.known) == "ORD7654321"

    def test_digits_only(self):
        assert resolve_order_id("12345", self.known) == "LD-12345"
        assert resolve_order_id("#000-777-000", self.known) == "LD-000777000"

    def test_misses(self):
        assert resolve_order_id("LD-99999", self.known) is None
        assert resolve_order_id("", self.known) is None
        assert resolve_order_id("no digits here", self.known) is None
        assert resolve_order_id("12345", []) is None
