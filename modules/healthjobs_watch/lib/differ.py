from __future__ import annotations

from collections.abc import Iterable, Mapping

from .models import DiffResult, JobRecord


def diff(current: Iterable[JobRecord], previous: Mapping[str, JobRecord]) -> DiffResult:
    """
    Split this run's records into unseen ones and fold them into the store.

    New = ids absent from `previous`, kept in extraction order. The merged store
    keeps every previous entry in place and lets the current run win on overlap,
    so `scraped_at` and any field drift always reflect the latest run.
    Neither input is mutated.
    """
    current = list(current)
    seen_ids = set(previous.keys())

    new_records = [rec for rec in current if rec.id not in seen_ids]

    merged: dict[str, JobRecord] = dict(previous)
    for rec in current:
        merged[rec.id] = rec

    return DiffResult(new_records=new_records, merged=merged)
