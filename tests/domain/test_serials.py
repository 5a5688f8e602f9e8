"""Tests for equipment serial generators."""

from dataclasses import dataclass
from datetime import datetime, timezone

import pytest

from fieldservice_kernel.domain.clock import DeterministicClock
from fieldservice_kernel.domain.serials import CatalogSerialGenerator, UUIDSerialGenerator


@dataclass
class _Source:
    brand: str
    model: str
    capacity_btu: int | None


class TestCatalogSerialGenerator:

    def test_format(self):
        clock = DeterministicClock(datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc))
        gen = CatalogSerialGenerator(clock, node="w1")
        serial = gen.next_serial(_Source("Coolmax", "CX-12", 12000))
        millis = int(clock.now().timestamp() * 1000)
        assert serial == f"Coolmax-CX-12-12000BTU-{millis}-w1-1"

    def test_sequence_makes_same_instant_unique(self):
        gen = CatalogSerialGenerator(DeterministicClock())
        source = _Source("Coolmax", "CX-12", 12000)
        serials = {gen.next_serial(source) for _ in range(50)}
        assert len(serials) == 50

    def test_timestamp_follows_clock(self):
        clock = DeterministicClock()
        gen = CatalogSerialGenerator(clock, node="w1")
        source = _Source("Coolmax", "CX-12", 12000)
        first = gen.next_serial(source)
        clock.advance(2.5)
        second = gen.next_serial(source)
        assert first == "Coolmax-CX-12-12000BTU-1704110400000-w1-1"
        assert second == "Coolmax-CX-12-12000BTU-1704110402500-w1-2"

    def test_separate_generators_on_one_clock_do_not_collide(self):
        clock = DeterministicClock()
        source = _Source("Coolmax", "CX-12", 12000)
        first_worker = CatalogSerialGenerator(clock)
        second_worker = CatalogSerialGenerator(clock)

        assert first_worker.node != second_worker.node
        assert first_worker.next_serial(source) != second_worker.next_serial(source)

    def test_default_node_is_eight_hex_chars(self):
        node = CatalogSerialGenerator(DeterministicClock()).node
        assert len(node) == 8
        int(node, 16)

    @pytest.mark.parametrize("node", ["", "   "])
    def test_blank_node_rejected(self, node):
        with pytest.raises(ValueError):
            CatalogSerialGenerator(DeterministicClock(), node=node)

    def test_whitespace_replaced(self):
        gen = CatalogSerialGenerator(DeterministicClock())
        serial = gen.next_serial(_Source("Frio Sur", "Eco Line 9", None))
        assert serial.startswith("Frio_Sur-Eco_Line_9-0BTU-")
        assert " " not in serial


class TestUUIDSerialGenerator:

    def test_unique_and_prefixed(self):
        gen = UUIDSerialGenerator()
        source = _Source("coolmax", "CX-12", 12000)
        a, b = gen.next_serial(source), gen.next_serial(source)
        assert a != b
        assert a.startswith("COOLMAX-")
