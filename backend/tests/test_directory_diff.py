"""Tests for directory diff and record hashing."""

from scrapers.utils import compute_directory_diff, compute_json_hash, compute_record_hash


class TestHashing:

    def test_key_order_and_whitespace_ignored(self):
        assert compute_json_hash({"a": "x  y", "b": 1}) == compute_json_hash({"b": 1, "a": "x y"})

    def test_list_order_matters(self):
        assert compute_json_hash(["a", "b"]) != compute_json_hash(["b", "a"])

    def test_excluded_fields(self):
        one = {"unit_id": "a", "last_reconciled_at": "2024-01-01T00:00:00+00:00"}
        two = {"unit_id": "a", "last_reconciled_at": "2024-02-01T00:00:00+00:00"}
        assert compute_record_hash(one, ["last_reconciled_at"]) == compute_record_hash(two, ["last_reconciled_at"])
        assert compute_record_hash(one) != compute_record_hash(two)


class TestDirectoryDiff:

    def test_classification(self, make_canonical):
        previous = [
            make_canonical("same", name="Same"),
            make_canonical("edit", name="Old Name", emails=["old@a.gov"]),
            make_canonical("gone", name="Gone"),
        ]
        current = [
            make_canonical("same", name="Same", last_reconciled_at="2025-01-01T00:00:00+00:00"),
            make_canonical("edit", name="New Name", emails=["old@a.gov"]),
            make_canonical("fresh", name="Fresh"),
        ]

        diff = compute_directory_diff(previous, current)

        assert diff.unchanged == ["same"]
        assert diff.changed == {"edit": ["name"]}
        assert diff.new == ["fresh"]
        assert diff.missing == ["gone"]
        assert diff.has_changes
        assert diff.summary() == {"unchanged": 1, "changed": 1, "new": 1, "missing": 1}

    def test_no_changes(self, make_canonical):
        records = [make_canonical("a", name="A")]
        diff = compute_directory_diff(records, records)
        assert not diff.has_changes
        assert diff.to_dict()["summary"]["unchanged"] == 1

    def test_first_run_everything_new(self, make_canonical):
        diff = compute_directory_diff([], [make_canonical("a"), make_canonical("b")])
        assert diff.new == ["a", "b"]
