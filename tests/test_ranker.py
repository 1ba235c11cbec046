"""
Tests for CandidateRanker, address equivalence and SufficiencyGate.
"""

import pytest

from leaderboard_snap.models.leaderboard_schema import InvariantViolation, assert_ranked
from leaderboard_snap.processors.quality_gate import SufficiencyGate
from leaderboard_snap.processors.ranker import CandidateRanker, addresses_match, expand_address

from conftest import make_address, make_record, truncate


@pytest.fixture
def ranker():
    return CandidateRanker()


@pytest.fixture
def messy_records(addresses):
    """Unsorted, with duplicates, more than 20 rows."""
    records = [make_record(i + 1, addresses[i], (i * 37_000) % 500_000 + 1_000) for i in range(26)]
    records.insert(15, make_record(16, addresses[13], 9_999_999))
    records.append(make_record(28, addresses[0], 1))
    return records


class TestRankedResult:

    def test_dense_ranks(self, ranker, messy_records):
        ranked = ranker.rank(messy_records)
        assert [r.rank for r in ranked] == list(range(1, 21))

    def test_sorted_by_volume(self, ranker, messy_records):
        ranked = ranker.rank(messy_records)
        volumes = [r.volume_numeric for r in ranked]
        assert volumes == sorted(volumes, reverse=True)

    def test_unique_addresses(self, ranker, messy_records):
        ranked = ranker.rank(messy_records)
        assert len({r.address for r in ranked}) == len(ranked)

    def test_first_occurrence_wins(self, ranker, messy_records, addresses):
        ranked = ranker.rank(messy_records)
        record = next(r for r in ranked if r.address == addresses[13])
        assert record.volume_numeric != 9_999_999

    def test_passes_invariant_check(self, ranker, messy_records):
        assert_ranked(ranker.rank(messy_records))

    def test_ranking_is_idempotent(self, ranker, messy_records):
        once = ranker.rank(messy_records)
        twice = ranker.rank(once)
        assert twice == once

    def test_ties_keep_input_order(self, ranker, addresses):
        records = [make_record(i + 1, addresses[i], 5_000) for i in range(4)]
        ranked = ranker.rank(records)
        assert [r.address for r in ranked] == addresses[:4]

    def test_custom_limit(self, addresses):
        records = [make_record(i + 1, addresses[i], 100 - i) for i in range(8)]
        assert len(CandidateRanker(max_records=5).rank(records)) == 5

    def test_empty(self, ranker):
        assert ranker.rank([]) == []


class TestTruncatedAddresses:

    def test_match_rules(self):
        full = make_address(3)
        assert addresses_match(full, full)
        assert addresses_match(truncate(full), full)
        assert addresses_match(full, truncate(full))
        assert not addresses_match(truncate(full), truncate(full) + "x")
        assert not addresses_match(truncate(full), make_address(4))

    def test_expand_needs_unique_match(self):
        full = make_address(3)
        assert expand_address(truncate(full), {full, make_address(4)}) == full
        assert expand_address(truncate(full), set()) == truncate(full)
        assert expand_address(full, {make_address(4)}) == full

    def test_dedupe_merges_truncated_and_full(self, ranker):
        full = make_address(3)
        records = [make_record(1, truncate(full), 500), make_record(2, full, 400)]
        deduped = ranker.dedupe(records)
        assert len(deduped) == 1
        assert deduped[0].address == full
        assert deduped[0].volume_numeric == 500

    def test_rank_upgrades_with_known_full(self, ranker):
        full = make_address(3)
        ranked = ranker.rank([make_record(1, truncate(full), 500)], known_full={full})
        assert ranked[0].address == full


class TestInvariantCheck:

    def test_gap_in_ranks(self, addresses):
        with pytest.raises(InvariantViolation):
            assert_ranked([make_record(1, addresses[0], 10), make_record(3, addresses[1], 5)])

    def test_duplicate_address(self, addresses):
        with pytest.raises(InvariantViolation):
            assert_ranked([make_record(1, addresses[0], 10), make_record(2, addresses[0], 5)])

    def test_unsorted(self, addresses):
        with pytest.raises(InvariantViolation):
            assert_ranked([make_record(1, addresses[0], 5), make_record(2, addresses[1], 10)])

    def test_too_many(self, addresses):
        records = [make_record(i + 1, addresses[i], 100 - i) for i in range(21)]
        with pytest.raises(InvariantViolation):
            assert_ranked(records)


class TestSufficiencyGate:

    def test_first_sufficient_wins(self, ranked_records):
        gate = SufficiencyGate(threshold=10)
        attempts = [("payload", ranked_records[:3]), ("table", ranked_records[:15]), ("grid", ranked_records)]
        name, records = gate.pick_best(attempts)
        assert name == "table"
        assert len(records) == 15

    def test_best_effort_prefers_larger_then_earlier(self, ranked_records):
        gate = SufficiencyGate(threshold=10)
        attempts = [("payload", ranked_records[:3]), ("table", ranked_records[:5]), ("grid", ranked_records[:5])]
        assert gate.pick_best(attempts)[0] == "table"

    def test_nothing(self):
        assert SufficiencyGate().pick_best([("payload", []), ("table", [])]) is None
