"""Invoice number sequencer tests."""

from datetime import date

import pytest

from invoicey.models import SequenceCounter
from invoicey.numbering import InvoiceNumberSequencer, format_number, resolve_format

from conftest import TENANT


@pytest.mark.unit
class TestFormatting:
    def test_yearly_format(self):
        assert format_number(resolve_format("yearly"), 2026, 1) == "INV-2026-001"

    def test_lifetime_format(self):
        assert format_number(resolve_format("lifetime"), 2026, 42) == "INV-0042"

    def test_padding_grows_past_width(self):
        assert format_number("INV-{year}-{seq:3}", 2026, 1234) == "INV-2026-1234"

    def test_custom_template(self):
        assert format_number(resolve_format("ACME/{year}/{seq:5}"), 2027, 9) == "ACME/2027/00009"

    def test_template_without_sequence_is_rejected(self):
        with pytest.raises(ValueError):
            resolve_format("INV-{year}")


@pytest.mark.unit
class TestSequencer:
    def test_first_number_starts_at_one(self, sequencer, storage):
        assert sequencer.next_number(TENANT) == "INV-2026-001"
        assert storage.get_sequence_counter(TENANT) == SequenceCounter(year=2026, sequence=1)

    def test_consecutive_calls_increase(self, sequencer):
        numbers = [sequencer.next_number(TENANT) for _ in range(3)]
        assert numbers == ["INV-2026-001", "INV-2026-002", "INV-2026-003"]

    def test_year_change_resets_sequence(self, sequencer, storage, clock):
        sequencer.next_number(TENANT)
        sequencer.next_number(TENANT)

        clock.current = date(2027, 1, 2)
        assert sequencer.next_number(TENANT) == "INV-2027-001"
        assert storage.get_sequence_counter(TENANT) == SequenceCounter(year=2027, sequence=1)

    def test_lifetime_mode_never_resets(self, storage, clock):
        sequencer = InvoiceNumberSequencer(storage, number_format="lifetime", clock=clock)
        assert sequencer.next_number(TENANT) == "INV-0001"

        clock.current = date(2027, 1, 2)
        assert sequencer.next_number(TENANT) == "INV-0002"

    def test_tenants_have_separate_counters(self, sequencer):
        assert sequencer.next_number("tenant_a") == "INV-2026-001"
        assert sequencer.next_number("tenant_b") == "INV-2026-001"
        assert sequencer.next_number("tenant_a") == "INV-2026-002"

    def test_peek_does_not_advance(self, sequencer):
        sequencer.next_number(TENANT)
        assert sequencer.peek(TENANT) == "INV-2026-002"
        assert sequencer.peek(TENANT) == "INV-2026-002"
        assert sequencer.next_number(TENANT) == "INV-2026-002"

    def test_reset_starts_over(self, sequencer):
        sequencer.next_number(TENANT)
        sequencer.reset(TENANT)
        assert sequencer.next_number(TENANT) == "INV-2026-001"

    def test_counter_persists_across_instances(self, storage, clock):
        InvoiceNumberSequencer(storage, clock=clock).next_number(TENANT)
        assert InvoiceNumberSequencer(storage, clock=clock).next_number(TENANT) == "INV-2026-002"
