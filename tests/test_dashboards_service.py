# tests/test_dashboards_service.py
from datetime import datetime, timedelta

from datavista_app.services.ai_parsing import parse_dashboard_response
from datavista_app.services.dashboards import (
    create_dashboard, list_dashboards, get_owned, record_view, latest_dashboards,
)
from datavista_app.services.file_intake import IncomingFile


def _make(owner_id, name="report.csv", raw='{"summary": "s"}'):
    incoming = IncomingFile(filename=name, mimetype="text/csv", data=b"a,b\n1,2\n")
    return create_dashboard(owner_id, incoming, "YSxiCjEsMgo=", raw, parse_dashboard_response(raw))


def test_title_drops_extension(db_session, user_normal):
    d = _make(user_normal.id, "q3.sales.xlsx")
    assert d.title == "q3.sales"
    assert d.file_name == "q3.sales.xlsx"
    assert d.views == 0


def test_list_is_owner_scoped_and_newest_first(db_session, user_normal, user_admin):
    a = _make(user_normal.id, "a.csv")
    b = _make(user_normal.id, "b.csv")
    _make(user_admin.id, "other.csv")
    b.created_at = a.created_at + timedelta(minutes=1)
    db_session.commit()

    rows = list_dashboards(user_normal.id)
    assert [r.file_name for r in rows] == ["b.csv", "a.csv"]


def test_list_search_and_sort(db_session, user_normal):
    _make(user_normal.id, "alpha.csv")
    _make(user_normal.id, "beta.csv")
    assert [r.title for r in list_dashboards(user_normal.id, search="alp")] == ["alpha"]
    assert [r.title for r in list_dashboards(user_normal.id, sort="title", order="asc")] == ["alpha", "beta"]


def test_list_date_range(db_session, user_normal):
    old = _make(user_normal.id, "old.csv")
    old.created_at = datetime(2020, 1, 1)
    db_session.commit()
    _make(user_normal.id, "new.csv")

    rows = list_dashboards(user_normal.id, start=datetime(2021, 1, 1))
    assert [r.file_name for r in rows] == ["new.csv"]
    rows = list_dashboards(user_normal.id, end=datetime(2020, 1, 2))
    assert [r.file_name for r in rows] == ["old.csv"]


def test_get_owned_hides_other_users(db_session, user_normal, user_admin):
    d = _make(user_normal.id)
    assert get_owned(d.id, user_normal.id) is d
    assert get_owned(d.id, user_admin.id) is None


def test_record_view(db_session, user_normal):
    d = _make(user_normal.id)
    record_view(d)
    record_view(d)
    assert d.views == 2


def test_latest_dashboards_limit(db_session, user_normal):
    for i in range(3):
        _make(user_normal.id, f"f{i}.csv")
    assert len(latest_dashboards(limit=2)) == 2
