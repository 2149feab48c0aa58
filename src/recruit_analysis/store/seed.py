"""Load candidates, job postings and applications from a YAML seed file."""

from __future__ import annotations

import mimetypes
from pathlib import Path

import yaml

from recruit_analysis.models.entity import Application, Candidate, JobPosting
from recruit_analysis.store.analysis_store import SQLiteAnalysisStore


def load_seed_file(path: str | Path, store: SQLiteAnalysisStore) -> dict[str, int]:
    """Upsert every entity in ``path`` and return how many of each were loaded.

    A candidate may point at a CV document with ``cv_file`` (resolved relative
    to the seed file); its MIME type is guessed from the extension.
    """
    path = Path(path)
    raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}

    counts = {"candidates": 0, "jobs": 0, "applications": 0}
    for entry in raw.get("candidates", []):
        entry = dict(entry)
        cv_file = entry.pop("cv_file", None)
        if cv_file:
            document = path.parent / cv_file
            entry["cv_document"] = document.read_bytes()
            entry.setdefault("cv_mime_type", mimetypes.guess_type(document.name)[0])
        store.upsert_candidate(Candidate.model_validate(entry))
        counts["candidates"] += 1

    for entry in raw.get("jobs", []):
        store.upsert_job(JobPosting.model_validate(entry))
        counts["jobs"] += 1

    for entry in raw.get("applications", []):
        store.upsert_application(Application.model_validate(entry))
        counts["applications"] += 1

    return counts
