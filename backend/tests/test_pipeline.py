"""
Tests for the directory pipeline (run and merge).

Registry client and scraper pool are replaced by in-memory fakes.
"""

import json

import pytest

from scrapers.models import RegistryRecord, RunStatus, ScrapedRecord
from scrapers.orchestrator import DirectoryPipeline, load_scraped_snapshot, save_scraped_snapshot


class FakeRegistryClient:
    def __init__(self, records, error=None):
        self.records = records
        self.error = error
        self.calls = 0

    def fetch_all(self, page_size=None):
        self.calls += 1
        if self.error:
            raise self.error
        return list(self.records)


class FakeScraperPool:
    concurrency = 2

    def __init__(self, by_id):
        self.by_id = by_id
        self.requested = []

    def scrape(self, unit_ids):
        self.requested.append(list(unit_ids))
        return [
            self.by_id.get(unit_id) or ScrapedRecord.placeholder(unit_id)
            for unit_id in unit_ids
        ]


@pytest.fixture
def registry():
    return [
        RegistryRecord(unit_id="a", title="Unit A", parent_agency_name="Dept"),
        RegistryRecord(unit_id="b", title="Unit B"),
        RegistryRecord(unit_id="c", title="Unit C"),
    ]


@pytest.fixture
def pool():
    return FakeScraperPool({
        "a": ScrapedRecord(unit_id="a", display_name="A page", extracted_email="foia@a.gov"),
        "b": ScrapedRecord(unit_id="b", extracted_email="National.FOIAPortal@usdoj.gov"),
    })


@pytest.fixture
def pipeline(registry, pool, directory_store, tmp_path):
    return DirectoryPipeline(
        registry_client=FakeRegistryClient(registry),
        store=directory_store,
        scraper_pool=pool,
        snapshot_path=tmp_path / "scraped.json",
    )


class TestRun:

    def test_full_run(self, pipeline, directory_store, pool):
        run = pipeline.run()

        assert run.status == RunStatus.COMPLETED
        assert pool.requested == [["a", "b", "c"]]

        stored = directory_store.load()
        assert [r.unit_id for r in stored] == ["a", "b", "c"]
        assert stored[0].name == "Unit A"
        assert stored[0].emails == ["foia@a.gov"]
        assert stored[1].emails == []
        assert run.stats["registry_records"] == 3
        assert run.stats["placeholders"] == 1
        assert run.stats["with_email"] == 1
        assert run.diff_summary == {"unchanged": 0, "changed": 0, "new": 3, "missing": 0}

    def test_limit(self, pipeline, pool, directory_store):
        pipeline.run(limit=2)
        assert pool.requested == [["a", "b"]]
        assert [r.unit_id for r in directory_store.load()] == ["a", "b"]

    def test_writes_snapshot(self, pipeline):
        pipeline.run()
        snapshot = load_scraped_snapshot(pipeline.snapshot_path)
        assert [r.unit_id for r in snapshot] == ["a", "b", "c"]
        assert snapshot[2].is_placeholder

    def test_dry_run_writes_nothing(self, pipeline, directory_store):
        run = pipeline.run(dry_run=True)

        assert run.status == RunStatus.COMPLETED
        assert not directory_store.path.exists()
        assert not pipeline.snapshot_path.exists()
        assert run.diff_summary["new"] == 3

    def test_second_run_unchanged(self, pipeline):
        pipeline.run()
        run = pipeline.run()
        assert run.diff_summary == {"unchanged": 3, "changed": 0, "new": 0, "missing": 0}

    def test_registry_crash_keeps_previous_directory(self, pool, directory_store, make_canonical, tmp_path):
        directory_store.save([make_canonical("old", name="Old")])
        pipeline = DirectoryPipeline(
            registry_client=FakeRegistryClient([], error=RuntimeError("boom")),
            store=directory_store,
            scraper_pool=pool,
            snapshot_path=tmp_path / "scraped.json",
        )

        run = pipeline.run()

        assert run.status == RunStatus.FAILED
        assert run.error_message == "boom"
        assert [r.unit_id for r in directory_store.load()] == ["old"]


    def test_empty_registry_keeps_previous_directory(self, pool, directory_store, make_canonical, tmp_path):
        directory_store.save([make_canonical("old", name="Old", emails=["foia@old.gov"])])
        pipeline = DirectoryPipeline(
            registry_client=FakeRegistryClient([]),
            store=directory_store,
            scraper_pool=pool,
            snapshot_path=tmp_path / "scraped.json",
        )

        run = pipeline.run()

        assert run.status == RunStatus.COMPLETED
        assert run.stats["directory_write_skipped"] == 1
        assert run.diff_summary["missing"] == 1
        assert [r.unit_id for r in directory_store.load()] == ["old"]

    def test_empty_result_written_when_nothing_stored(self, pool, directory_store, tmp_path):
        pipeline = DirectoryPipeline(
            registry_client=FakeRegistryClient([]),
            store=directory_store,
            scraper_pool=pool,
            snapshot_path=tmp_path / "scraped.json",
        )

        run = pipeline.run()

        assert "directory_write_skipped" not in run.stats
        assert directory_store.load() == []
        assert directory_store.path.exists()


class TestMerge:

    def test_merge_from_snapshot(self, pipeline, directory_store):
        save_scraped_snapshot(pipeline.snapshot_path, [
            ScrapedRecord(unit_id="c", extracted_email="foia@c.gov"),
            ScrapedRecord(unit_id="zz", display_name="Unlisted"),
        ])

        run = pipeline.merge()

        assert run.status == RunStatus.COMPLETED
        assert run.mode == "merge"
        stored = directory_store.load()
        assert [r.unit_id for r in stored] == ["c", "zz"]
        assert stored[0].name == "Unit C"
        assert stored[1].name == "Unlisted"

    def test_merge_with_explicit_records(self, pipeline, directory_store):
        pipeline.merge(scraped=[ScrapedRecord(unit_id="a", extracted_email="x@a.gov")])
        assert directory_store.load()[0].emails == ["x@a.gov"]

    def test_merge_missing_snapshot_fails(self, pipeline):
        run = pipeline.merge()
        assert run.status == RunStatus.FAILED


def test_snapshot_file_format(tmp_path):
    path = tmp_path / "s.json"
    save_scraped_snapshot(path, [ScrapedRecord(unit_id="a", extracted_email="e@a.gov")])
    data = json.loads(path.read_text(encoding="utf-8"))
    assert data[0]["unit_id"] == "a"
    assert data[0]["parse_status"] == "success"
