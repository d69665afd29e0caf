"""Tests for the batch processor: concurrent fetches, sequential updates."""

from __future__ import annotations

import threading
from datetime import date
from typing import Dict, List

import pytest

from clients.thingspeak import DayResponse, SensorApiError
from datastore.almanac_store import AlmanacStore
from services.processor import AlmanacProcessor, RunStatus
from services.updater import AlmanacUpdater
from storage.archive import ResponseArchive


def _payload(day: str, values: List[float]) -> Dict:
    year, month, dom = day.split("-")
    feeds = [
        {
            "created_at": f"{year}-{month}-{dom}T{20 + index:02d}:00:00Z",
            "entry_id": index + 1,
            "field1": "20.0",
            "field2": str(value),
        }
        for index, value in enumerate(values)
    ]
    return {"channel": {"id": 581842}, "feeds": feeds}


class StubSource:
    def __init__(self, payloads: Dict[str, Dict], failing: tuple = ()) -> None:
        self.payloads = payloads
        self.failing = set(failing)
        self.requested: List[str] = []
        self.closed = False
        self._lock = threading.Lock()

    def fetch_day(self, day: str) -> DayResponse:
        with self._lock:
            self.requested.append(day)
        if day in self.failing:
            raise SensorApiError(f"Request for {day} failed with status 500.")
        return DayResponse(day=day, payload=self.payloads.get(day, {"feeds": []}))

    def close(self) -> None:
        self.closed = True


@pytest.fixture()
def store(tmp_path) -> AlmanacStore:
    return AlmanacStore(path=tmp_path / "almanac.json")


def _processor(source, store: AlmanacStore, archive: ResponseArchive | None = None) -> AlmanacProcessor:
    return AlmanacProcessor(
        source=source,
        store=store,
        updater=AlmanacUpdater(),
        archive=archive,
        workers=2,
    )


def test_process_range_updates_and_persists(store: AlmanacStore) -> None:
    source = StubSource(
        {
            "2021-01-02": _payload("2021-01-02", [3.0, 4.5]),
            "2021-01-03": _payload("2021-01-03", [2.0, 6.0]),
        }
    )
    processor = _processor(source, store)

    try:
        summary = processor.process_range(date(2021, 1, 2), date(2021, 1, 4))
    finally:
        processor.shutdown()

    assert summary.status is RunStatus.processed
    assert summary.processed_days == ["2021-01-02", "2021-01-03"]
    assert sorted(source.requested) == ["2021-01-02", "2021-01-03"]
    assert source.closed is True

    almanac = store.load()
    assert [reading.value for reading in almanac["2021"].year.hottest_days] == [4.5, 6.0]
    assert [reading.value for reading in almanac["2021"].year.coldest_days] == [2.0, 3.0]
    assert almanac["All"].year.average.n == 4
    assert almanac.metadata.start_date == "2021-01-02"
    assert almanac.metadata.end_date == "2021-01-03"
    assert almanac.metadata.missed_days == []


def test_failed_days_are_recorded_as_missed(store: AlmanacStore) -> None:
    source = StubSource(
        {"2021-01-02": _payload("2021-01-02", [3.0])},
        failing=("2021-01-03",),
    )
    processor = _processor(source, store)

    summary = processor.process_range(date(2021, 1, 2), date(2021, 1, 4))
    processor.shutdown()

    assert summary.status is RunStatus.partial
    assert summary.failed_days == ["2021-01-03"]
    almanac = store.load()
    assert almanac.metadata.missed_days == ["2021-01-03"]
    assert almanac.metadata.end_date == "2021-01-02"


def test_all_days_failing_reports_failed(store: AlmanacStore) -> None:
    source = StubSource({}, failing=("2021-01-02",))
    processor = _processor(source, store)

    summary = processor.process_range(date(2021, 1, 2), date(2021, 1, 3))
    processor.shutdown()

    assert summary.status is RunStatus.failed
    assert store.load().metadata.missed_days == ["2021-01-02"]


def test_retry_missed_clears_recovered_days(store: AlmanacStore) -> None:
    failing = StubSource({}, failing=("2021-01-02", "2021-01-05"))
    first = _processor(failing, store)
    first.process_range(date(2021, 1, 2), date(2021, 1, 3))
    first.process_range(date(2021, 1, 5), date(2021, 1, 6))
    first.shutdown()
    assert store.load().metadata.missed_days == ["2021-01-02", "2021-01-05"]

    recovering = StubSource(
        {"2021-01-02": _payload("2021-01-02", [1.5])},
        failing=("2021-01-05",),
    )
    second = _processor(recovering, store)
    summary = second.retry_missed()
    second.shutdown()

    assert summary.processed_days == ["2021-01-02"]
    assert summary.failed_days == ["2021-01-05"]
    almanac = store.load()
    assert almanac.metadata.missed_days == ["2021-01-05"]
    assert almanac["2021"].year.hottest_days[0].value == 1.5


def test_retry_missed_can_drop_days_that_fail_again(store: AlmanacStore) -> None:
    first = _processor(StubSource({}, failing=("2021-01-02",)), store)
    first.process_range(date(2021, 1, 2), date(2021, 1, 3))
    first.shutdown()

    second = _processor(StubSource({}, failing=("2021-01-02",)), store)
    summary = second.retry_missed(remove_failed=True)
    second.shutdown()

    assert summary.failed_days == ["2021-01-02"]
    assert store.load().metadata.missed_days == []


def test_retry_with_nothing_missed_is_a_no_op(store: AlmanacStore) -> None:
    source = StubSource({})
    processor = _processor(source, store)

    summary = processor.retry_missed()
    processor.shutdown()

    assert summary.processed_days == [] and summary.failed_days == []
    assert source.requested == []


def test_save_responses_archives_payloads_and_rebuild_uses_them(tmp_path) -> None:
    archive = ResponseArchive(root_path=tmp_path / "archive")
    payload = _payload("2021-07-10", [21.0, 24.5])
    online = _processor(
        StubSource({"2021-07-10": payload}),
        AlmanacStore(path=tmp_path / "online.json"),
        archive,
    )
    online.process_range(date(2021, 7, 10), date(2021, 7, 11), save_responses=True)
    online.shutdown()

    assert archive.get_day("2021-07-10") == payload

    offline_store = AlmanacStore(path=tmp_path / "offline.json")
    offline = _processor(None, offline_store, archive)
    summary = offline.rebuild_from_archive(date(2021, 7, 10), date(2021, 7, 12))
    offline.shutdown()

    assert summary.processed_days == ["2021-07-10"]
    assert summary.failed_days == ["2021-07-11"]
    rebuilt = offline_store.load()
    online_almanac = AlmanacStore(path=tmp_path / "online.json").load()
    assert rebuilt["2021"].model_dump() == online_almanac["2021"].model_dump()


def test_rebuild_without_archive_is_rejected(store: AlmanacStore) -> None:
    processor = _processor(None, store)

    with pytest.raises(ValueError, match="archive"):
        processor.rebuild_from_archive(date(2021, 1, 1), date(2021, 1, 2))
    processor.shutdown()


def test_processing_without_source_records_every_day_as_missed(store: AlmanacStore) -> None:
    processor = _processor(None, store)

    summary = processor.process_range(date(2021, 1, 1), date(2021, 1, 3))
    processor.shutdown()

    assert summary.status is RunStatus.failed
    assert store.load().metadata.missed_days == ["2021-01-01", "2021-01-02"]


def test_corrupt_archived_day_is_missed_and_run_still_saves(tmp_path) -> None:
    archive = ResponseArchive(root_path=tmp_path / "archive")
    archive.put_day("2021-01-02", _payload("2021-01-02", [3.0]))
    corrupt = tmp_path / "archive" / "2021" / "2021-01-03.zip"
    corrupt.write_bytes(b"not a zip file")
    store = AlmanacStore(path=tmp_path / "almanac.json")
    processor = _processor(None, store, ResponseArchive(root_path=tmp_path / "archive"))

    summary = processor.rebuild_from_archive(date(2021, 1, 2), date(2021, 1, 4))
    processor.shutdown()

    assert summary.processed_days == ["2021-01-02"]
    assert summary.failed_days == ["2021-01-03"]
    almanac = store.load()
    assert almanac.metadata.missed_days == ["2021-01-03"]
    assert almanac["2021"].year.hottest_days[0].value == 3.0


def test_archived_json_that_is_not_a_feed_is_missed(tmp_path) -> None:
    archive = ResponseArchive()
    archive.put_day("2021-01-02", ["not", "a", "feed"])
    store = AlmanacStore(path=tmp_path / "almanac.json")
    processor = _processor(None, store, archive)

    summary = processor.rebuild_from_archive(date(2021, 1, 2), date(2021, 1, 3))
    processor.shutdown()

    assert summary.status is RunStatus.failed
    assert store.load().metadata.missed_days == ["2021-01-02"]


def test_malformed_feed_entries_are_skipped(store: AlmanacStore) -> None:
    good = _payload("2021-01-03", [5.5])
    source = StubSource(
        {
            "2021-01-02": {"feeds": ["oops"]},
            "2021-01-03": {"feeds": ["oops", None, *good["feeds"]]},
        }
    )
    processor = _processor(source, store)

    summary = processor.process_range(date(2021, 1, 2), date(2021, 1, 4))
    processor.shutdown()

    assert summary.status is RunStatus.processed
    almanac = store.load()
    assert [reading.value for reading in almanac["2021"].year.hottest_days] == [5.5]
    assert almanac.metadata.missed_days == []


def test_payload_without_feed_list_is_missed(store: AlmanacStore) -> None:
    source = StubSource(
        {
            "2021-01-02": {"feeds": "oops"},
            "2021-01-03": _payload("2021-01-03", [1.0]),
        }
    )
    processor = _processor(source, store)

    summary = processor.process_range(date(2021, 1, 2), date(2021, 1, 4))
    processor.shutdown()

    assert summary.failed_days == ["2021-01-02"]
    assert summary.processed_days == ["2021-01-03"]
    assert store.load().metadata.missed_days == ["2021-01-02"]


def test_corrupt_almanac_aborts_before_fetching(store: AlmanacStore) -> None:
    store.path.write_text("{broken")
    source = StubSource({"2021-01-02": _payload("2021-01-02", [1.0])})
    processor = _processor(source, store)

    with pytest.raises(ValueError, match="not valid"):
        processor.process_range(date(2021, 1, 2), date(2021, 1, 3))
    processor.shutdown()

    assert source.requested == []
    assert store.path.read_text() == "{broken"
