"""
Tests for LedgerSnapshot and the nest/flatten helpers.
"""

import pytest

from tabulator.features.ledger import LedgerSnapshot, ScoreKey, flatten, nest


ROWS = [
    {"segmentId": "seg", "contestantId": "A", "judgeId": "j1", "criterionId": "c1", "score": 8},
    {"segmentId": "seg", "contestantId": "A", "judgeId": "j2", "criterionId": "c1", "score": 7.5},
    {"segment_id": "seg", "contestant_id": "B", "judge_id": "j1", "criterion_id": "c1", "score": "6"},
]


# =============================================================================
# ScoreKey
# =============================================================================

class TestScoreKey:

    def test_composite(self):
        assert ScoreKey("seg", "A", "j1", "c1").composite == "seg|A|j1|c1"

    def test_parse(self):
        assert ScoreKey.parse("seg|A|j1|c1") == ScoreKey("seg", "A", "j1", "c1")

    @pytest.mark.parametrize("composite", ["seg|A|j1", "seg||j1|c1", "a|b|c|d|e"])
    def test_parse_rejects_malformed(self, composite):
        with pytest.raises(ValueError):
            ScoreKey.parse(composite)


# =============================================================================
# Construction
# =============================================================================

class TestFromRows:
    """Tests for LedgerSnapshot.from_rows."""

    def test_accepts_camel_and_snake_case(self):
        snapshot = LedgerSnapshot.from_rows(1, ROWS)

        assert len(snapshot) == 3
        assert snapshot.get(ScoreKey("seg", "A", "j2", "c1")) == 7.5
        assert snapshot.get(ScoreKey("seg", "B", "j1", "c1")) == 6.0

    def test_skips_malformed_rows(self):
        rows = ROWS + [
            {"segmentId": "seg", "contestantId": "C", "judgeId": "j1", "score": 5},
            {"segmentId": "seg", "contestantId": "C", "judgeId": "j1", "criterionId": "c1", "score": "x"},
            {"segmentId": "seg", "contestantId": "C", "judgeId": "j1", "criterionId": "c1", "score": True},
            {"segmentId": "seg", "contestantId": "C", "judgeId": "j1", "criterionId": "c1", "score": None},
        ]

        snapshot = LedgerSnapshot.from_rows(1, rows)

        assert len(snapshot) == 3

    def test_later_row_wins(self):
        rows = ROWS + [
            {"segmentId": "seg", "contestantId": "A", "judgeId": "j1", "criterionId": "c1", "score": 9},
        ]

        snapshot = LedgerSnapshot.from_rows(1, rows)

        assert snapshot.get(ScoreKey("seg", "A", "j1", "c1")) == 9.0

    def test_empty(self):
        snapshot = LedgerSnapshot.empty(7)

        assert snapshot.is_empty
        assert snapshot.competition_id == 7
        assert snapshot.rows() == []


# =============================================================================
# Fingerprint and views
# =============================================================================

class TestFingerprint:

    def test_independent_of_row_order(self):
        forward = LedgerSnapshot.from_rows(1, ROWS)
        backward = LedgerSnapshot.from_rows(1, list(reversed(ROWS)))

        assert forward.fingerprint == backward.fingerprint
        assert list(forward.keys()) == list(backward.keys())

    def test_changes_with_a_value(self):
        changed = [dict(row) for row in ROWS]
        changed[0]["score"] = 8.25

        assert LedgerSnapshot.from_rows(1, ROWS).fingerprint != LedgerSnapshot.from_rows(1, changed).fingerprint

    def test_is_sha256_hex(self):
        fingerprint = LedgerSnapshot.from_rows(1, ROWS).fingerprint

        assert len(fingerprint) == 64
        int(fingerprint, 16)


class TestViews:

    def test_nested_round_trip(self):
        snapshot = LedgerSnapshot.from_rows(1, ROWS)
        nested = snapshot.as_nested()

        assert nested["seg"]["A"]["j1"]["c1"] == 8.0
        assert LedgerSnapshot.from_nested(1, nested).fingerprint == snapshot.fingerprint

    def test_flatten_inverts_nest(self):
        values = {ScoreKey("s", "c", "j", "k"): 1.0, ScoreKey("s", "c", "j2", "k"): 2.0}

        assert flatten(nest(values.items())) == values

    def test_rows_use_api_field_names(self):
        row = LedgerSnapshot.from_rows(1, ROWS[:1]).rows()[0]

        assert row == {
            "segmentId": "seg",
            "contestantId": "A",
            "judgeId": "j1",
            "criterionId": "c1",
            "score": 8.0,
        }
