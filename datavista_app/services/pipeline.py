# datavista_app/services/pipeline.py
# -*- coding: utf-8 -*-
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from .ai_client import GenerationError
from .ai_parsing import parse_dashboard_response
from .dashboards import create_dashboard
from .encoder import encode_content

STATUS_CREATED = "created"
STATUS_QUOTA = "quota_exceeded"
STATUS_FAILED = "failed"
STATUS_SKIPPED = "skipped"


@dataclass
class FileOutcome:
    file_name: str
    status: str
    dashboard_id: Optional[int] = None
    message: str = ""
    parsed: bool = False


@dataclass
class PipelineReport:
    outcomes: list[FileOutcome] = field(default_factory=list)

    @property
    def created(self) -> list[FileOutcome]:
        return [o for o in self.outcomes if o.status == STATUS_CREATED]

    @property
    def quota_blocked(self) -> bool:
        return any(o.status == STATUS_QUOTA for o in self.outcomes)

    @property
    def failed(self) -> bool:
        return any(o.status == STATUS_FAILED for o in self.outcomes)


@dataclass
class _Generated:
    encoded: str
    raw: str


class UploadPipeline:
    """
    encode -> generate -> parse -> persist -> commit quota, per accepted file.

    Files run in windows of `concurrency`; with 1 (default) the whole chain
    for one file finishes before the next starts. Only encode+generate run
    on worker threads; DB work stays on the calling thread, in upload order.
    """

    def __init__(self, gate, client, concurrency: int = 1, atomic_quota: bool = False,
                 logger: Optional[logging.Logger] = None):
        self.gate = gate
        self.client = client
        self.concurrency = max(1, int(concurrency or 1))
        self.atomic_quota = atomic_quota
        self.logger = logger or logging.getLogger(__name__)

    def _generate(self, incoming) -> _Generated:
        encoded = encode_content(incoming.data)
        raw = self.client.generate_dashboard(encoded, incoming.filename, incoming.mimetype)
        return _Generated(encoded=encoded, raw=raw)

    def _allow(self, owner_id: int, window) -> list:
        """Files of the window that the quota lets through."""
        if self.atomic_quota:
            allowed = []
            for f in window:
                if not self.gate.try_reserve(owner_id):
                    break
                allowed.append(f)
            return allowed
        if self.concurrency == 1:
            return list(window) if self.gate.check_and_reserve(owner_id) else []
        return list(window[: self.gate.remaining(owner_id)])

    def run(self, owner_id: int, files) -> PipelineReport:
        report = PipelineReport()
        files = list(files or [])
        pool = ThreadPoolExecutor(max_workers=self.concurrency) if self.concurrency > 1 else None
        try:
            i = 0
            while i < len(files):
                window = files[i:i + self.concurrency]
                i += len(window)

                allowed = self._allow(owner_id, window)
                for f in window[len(allowed):]:
                    report.outcomes.append(FileOutcome(f.filename, STATUS_QUOTA,
                                                       message="Daily upload limit reached."))
                if not allowed:
                    continue

                if pool is not None:
                    futures = [pool.submit(self._generate, f) for f in allowed]
                    results = [self._collect(fut.result) for fut in futures]
                else:
                    results = [self._collect(lambda f=f: self._generate(f)) for f in allowed]

                aborted = False
                for f, (gen, err) in zip(allowed, results):
                    if aborted:
                        self._release(owner_id)
                        report.outcomes.append(FileOutcome(f.filename, STATUS_SKIPPED,
                                                           message="Not processed after an earlier failure."))
                        continue
                    if err is not None:
                        self.logger.warning("Dashboard generation failed for %s: %s", f.filename, err)
                        self._release(owner_id)
                        report.outcomes.append(FileOutcome(f.filename, STATUS_FAILED,
                                                           message="Upload failed. Please try again."))
                        aborted = True
                        continue
                    try:
                        outcome = self._persist(owner_id, f, gen)
                    except Exception:
                        db.session.rollback()
                        self.logger.exception("Failed to store dashboard for %s", f.filename)
                        self._release(owner_id)
                        outcome = FileOutcome(f.filename, STATUS_FAILED,
                                              message="Upload failed. Please try again.")
                    report.outcomes.append(outcome)
                    aborted = outcome.status == STATUS_FAILED

                if aborted:
                    for f in files[i:]:
                        report.outcomes.append(FileOutcome(f.filename, STATUS_SKIPPED,
                                                           message="Not processed after an earlier failure."))
                    break
        finally:
            if pool is not None:
                pool.shutdown(wait=True)
        return report

    def _collect(self, fn):
        try:
            return fn(), None
        except GenerationError as e:
            return None, e
        except Exception as e:
            self.logger.exception("Unexpected error while generating a dashboard")
            return None, e

    def _persist(self, owner_id: int, f, gen: _Generated) -> FileOutcome:
        parsed = parse_dashboard_response(gen.raw)
        if not parsed.ok:
            self.logger.info("AI response for %s is not valid JSON; storing raw text", f.filename)
        try:
            rec = create_dashboard(owner_id, f, gen.encoded, gen.raw, parsed)
        except SQLAlchemyError:
            db.session.rollback()
            self.logger.exception("Failed to persist dashboard for %s", f.filename)
            self._release(owner_id)
            return FileOutcome(f.filename, STATUS_FAILED, message="Upload failed. Please try again.")
        dashboard_id = rec.id
        if not self.atomic_quota:
            try:
                self.gate.commit(owner_id)
            except SQLAlchemyError:
                # the dashboard is stored; only the counter is behind
                db.session.rollback()
                self.logger.exception("Failed to count upload of %s for user %s", f.filename, owner_id)
        return FileOutcome(f.filename, STATUS_CREATED, dashboard_id=dashboard_id, parsed=parsed.ok,
                           message=f"{f.filename} uploaded and dashboard generated.")

    def _release(self, owner_id: int) -> None:
        if self.atomic_quota:
            self.gate.release(owner_id)
