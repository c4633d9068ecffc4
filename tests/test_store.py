# tests/test_store.py
import json

from modules.healthjobs_watch.lib import store
from modules.healthjobs_watch.lib.models import JobRecord


def test_missing_file_is_first_run(data_file):
    assert store.load(data_file) == {}
    assert store.count_records(data_file) == 0


def test_corrupt_file_is_first_run(tmp_path):
    p = tmp_path / "jobs.json"
    p.write_text("{not json", encoding="utf-8")

    assert store.load(str(p)) == {}


def test_non_list_document_is_first_run(tmp_path):
    p = tmp_path / "jobs.json"
    p.write_text(json.dumps({"id": "/job/1"}), encoding="utf-8")

    assert store.load(str(p)) == {}


def test_save_creates_parents_and_round_trips(data_file, make_record):
    records = {
        "/job/1": make_record("/job/1", salary="£1"),
        "slug-title-": make_record("slug-title-", title="Slug Title ", link=""),
        "/job/3": make_record("/job/3", employer="Hôpital Saint-Étienne"),
    }

    store.save(data_file, records)
    loaded = store.load(data_file)

    assert loaded == records
    assert list(loaded) == list(records)
    assert store.count_records(data_file) == 3


def test_save_writes_pretty_json_list_with_camelcase_timestamp(data_file, make_record):
    store.save(data_file, {"/job/1": make_record("/job/1")})

    with open(data_file, encoding="utf-8") as f:
        text = f.read()
    data = json.loads(text)

    assert isinstance(data, list)
    assert list(data[0].keys()) == [
        "id",
        "title",
        "grade",
        "employer",
        "location",
        "speciality",
        "salary",
        "link",
        "scrapedAt",
    ]
    assert '\n  {\n    "id": "/job/1"' in text


def test_save_overwrites_whole_file(data_file, make_record):
    store.save(data_file, {"a": make_record("a"), "b": make_record("b")})
    store.save(data_file, {"c": make_record("c")})

    assert list(store.load(data_file)) == ["c"]


def test_load_tolerates_partial_and_junk_entries(tmp_path):
    p = tmp_path / "jobs.json"
    p.write_text(
        json.dumps([
            {"id": "/job/1", "title": "Registrar", "scrapedAt": "2025-01-01T00:00:00.000Z"},
            "junk",
            {"title": "No id"},
            {"id": "/job/2", "title": "Old", "salary": None},
            {"id": "/job/2", "title": "Newer"},
        ]),
        encoding="utf-8",
    )

    loaded = store.load(str(p))

    assert list(loaded) == ["/job/1", "/job/2"]
    assert loaded["/job/1"] == JobRecord(id="/job/1", title="Registrar", scraped_at="2025-01-01T00:00:00.000Z")
    assert loaded["/job/2"].title == "Newer"
    assert loaded["/job/2"].salary == ""
