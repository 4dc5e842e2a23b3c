# datavista_app/services/quota.py
# -*- coding: utf-8 -*-
from __future__ import annotations

from flask import current_app
from sqlalchemy import update

from ..extensions import db
from ..models.upload_record import UploadRecord, today_ref


class QuotaGate:
    """
    Per-user daily upload counter.

    check_and_reserve() + commit() is the plain read-then-write flow: two
    sessions that both check before either commits can push `count` past
    `max_daily`. try_reserve()/release() do the increment as one conditional
    UPDATE instead.
    """

    def __init__(self, max_daily: int = 10):
        self.max_daily = max_daily

    def get_record(self, owner_id: int) -> UploadRecord:
        rec = UploadRecord.query.filter_by(owner_id=owner_id).first()
        if not rec:
            rec = UploadRecord(owner_id=owner_id, date=today_ref(), count=0, max_daily=self.max_daily)
            db.session.add(rec); db.session.commit()
            return rec
        cur = today_ref()
        if rec.date != cur:
            rec.date = cur
            rec.count = 0
            db.session.add(rec); db.session.commit()
        return rec

    def check_and_reserve(self, owner_id: int) -> bool:
        rec = self.get_record(owner_id)
        return rec.count < rec.max_daily

    def commit(self, owner_id: int) -> int:
        rec = self.get_record(owner_id)
        rec.count = (rec.count or 0) + 1
        db.session.add(rec); db.session.commit()
        return rec.count

    def remaining(self, owner_id: int) -> int:
        rec = self.get_record(owner_id)
        return max(0, rec.max_daily - rec.count)

    def try_reserve(self, owner_id: int) -> bool:
        self.get_record(owner_id)
        res = db.session.execute(
            update(UploadRecord)
            .where(UploadRecord.owner_id == owner_id,
                   UploadRecord.date == today_ref(),
                   UploadRecord.count < UploadRecord.max_daily)
            .values(count=UploadRecord.count + 1)
        )
        db.session.commit()
        db.session.expire_all()
        return res.rowcount == 1

    def release(self, owner_id: int) -> None:
        db.session.execute(
            update(UploadRecord)
            .where(UploadRecord.owner_id == owner_id,
                   UploadRecord.date == today_ref(),
                   UploadRecord.count > 0)
            .values(count=UploadRecord.count - 1)
        )
        db.session.commit()
        db.session.expire_all()


def init_quota(app) -> None:
    app.extensions["quota_gate"] = QuotaGate(max_daily=int(app.config.get("UPLOAD_MAX_DAILY", 10)))


def get_quota_gate() -> QuotaGate:
    gate = current_app.extensions.get("quota_gate")
    if gate is None:
        init_quota(current_app)
        gate = current_app.extensions["quota_gate"]
    return gate
