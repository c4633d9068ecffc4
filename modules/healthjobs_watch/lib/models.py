from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

# Field order of a persisted record (matches existing data/jobs.json files).
_TEXT_FIELDS = ("title", "grade", "employer", "location", "speciality", "salary", "link")


@dataclass(frozen=True)
class JobRecord:
    """
    A single HealthJobsUK listing as extracted from the search results page.

    `id` is the detail-page path without its query string, or a title slug when
    the listing has no link. Every text field defaults to "" so a record is
    never partial.
    """

    id: str
    title: str
    grade: str = ""
    employer: str = ""
    location: str = ""
    speciality: str = ""
    salary: str = ""
    link: str = ""
    scraped_at: str = ""

    def to_dict(self) -> dict[str, str]:
        out = {"id": self.id}
        for name in _TEXT_FIELDS:
            out[name] = getattr(self, name)
        out["scrapedAt"] = self.scraped_at
        return out

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> JobRecord:
        def _s(key: str) -> str:
            v = data.get(key)
            return "" if v is None else str(v)

        return cls(
            id=_s("id"),
            title=_s("title"),
            grade=_s("grade"),
            employer=_s("employer"),
            location=_s("location"),
            speciality=_s("speciality"),
            salary=_s("salary"),
            link=_s("link"),
            scraped_at=_s("scrapedAt") or _s("scraped_at"),
        )


# id -> record, insertion ordered
RecordStore = dict[str, JobRecord]


@dataclass
class DiffResult:
    """
    Outcome of comparing one run's records against the persisted store.
    - new_records: records whose id was not in the previous store (run order).
    - merged: previous store overlaid with every current record.
    """

    new_records: list[JobRecord] = field(default_factory=list)
    merged: RecordStore = field(default_factory=dict)
