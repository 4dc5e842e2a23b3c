# tests/test_dashboards_blueprint.py
import io
import json

import pytest

import datavista_app.blueprints.dashboards as dash_mod
from datavista_app.models import Dashboard, AuditLog
from datavista_app.models.upload_record import UploadRecord
from datavista_app.services.ai_client import GenerationError
from datavista_app.services.quota import get_quota_gate


@pytest.fixture(autouse=True)
def _mock_templates(monkeypatch):
    monkeypatch.setattr(dash_mod, "render_template", lambda *a, **k: "OK", raising=True)
    yield


def _flashes(client):
    with client.session_transaction() as sess:
        return [m for _, m in sess.get("_flashes", [])]


def _upload(client, *files):
    data = {"files": [(io.BytesIO(body), name, mime) for name, body, mime in files]}
    return client.post("/upload", data=data, content_type="multipart/form-data", follow_redirects=False)


def _set_count(db_session, user, count):
    rec = get_quota_gate().get_record(user.id)
    rec.count = count
    db_session.commit()


def test_dashboard_requires_login(client):
    r = client.get("/dashboard", follow_redirects=False)
    assert r.status_code == 302
    assert "/login" in r.location


def test_dashboard_list_renders(logged_client_user):
    r = logged_client_user.get("/dashboard?search=x&start=2024-01-01&end=bad&sort=title&order=asc")
    assert r.status_code == 200
    assert r.get_data(as_text=True) == "OK"


def test_upload_creates_dashboard_and_redirects_to_it(app, db_session, logged_client_user, user_normal, fake_ai):
    r = _upload(logged_client_user, ("sales.csv", b"month,total\nJan,10\n", "text/csv"))
    assert r.status_code == 302

    d = Dashboard.query.filter_by(owner_id=user_normal.id).one()
    assert r.location.endswith(f"/dashboards/{d.id}")
    assert d.charts and d.metrics
    assert "sales.csv uploaded and dashboard generated." in _flashes(logged_client_user)
    assert UploadRecord.query.filter_by(owner_id=user_normal.id).one().count == 1
    assert AuditLog.query.filter_by(user_id=user_normal.id, action="upload").count() == 1


def test_upload_invalid_file_is_rejected(app, db_session, logged_client_user, user_normal, fake_ai):
    r = _upload(logged_client_user, ("malware.exe", b"MZ", "application/octet-stream"))
    assert r.status_code == 302
    assert r.location.endswith("/dashboard")
    assert "malware.exe is not a supported file type." in _flashes(logged_client_user)
    assert fake_ai.calls == []


def test_upload_mixed_files_processes_only_valid(app, db_session, logged_client_user, user_normal, fake_ai):
    _upload(logged_client_user,
            ("ok.csv", b"a\n1\n", "text/csv"),
            ("empty.json", b"", "application/json"),
            ("notes.txt", b"hello", "text/plain"))
    assert [c[1] for c in fake_ai.calls] == ["ok.csv", "notes.txt"]
    assert Dashboard.query.filter_by(owner_id=user_normal.id).count() == 2


def test_upload_without_files(logged_client_user, fake_ai):
    r = logged_client_user.post("/upload", data={}, content_type="multipart/form-data")
    assert r.status_code == 302
    assert "Select at least one file." in _flashes(logged_client_user)


def test_upload_blocked_when_quota_reached(app, db_session, logged_client_user, user_normal, fake_ai):
    _set_count(db_session, user_normal, 10)
    r = _upload(logged_client_user, ("sales.csv", b"a\n1\n", "text/csv"))
    assert r.status_code == 302
    assert any("Daily upload limit reached" in m for m in _flashes(logged_client_user))
    assert fake_ai.calls == []
    assert Dashboard.query.filter_by(owner_id=user_normal.id).count() == 0


def test_upload_malformed_ai_response(app, db_session, logged_client_user, user_normal, fake_ai):
    fake_ai.responses = ["Total revenue is 40 and growing."]
    _upload(logged_client_user, ("sales.csv", b"a\n1\n", "text/csv"))
    d = Dashboard.query.filter_by(owner_id=user_normal.id).one()
    assert d.ai_summary == "Total revenue is 40 and growing."
    assert d.charts == [] and d.metrics == []


def test_upload_generation_failure_flashes(app, db_session, logged_client_user, user_normal, fake_ai):
    fake_ai.responses = [GenerationError("HTTP 503")]
    r = _upload(logged_client_user, ("sales.csv", b"a\n1\n", "text/csv"))
    assert r.location.endswith("/dashboard")
    assert "sales.csv: Upload failed. Please try again." in _flashes(logged_client_user)
    assert Dashboard.query.filter_by(owner_id=user_normal.id).count() == 0
    assert UploadRecord.query.filter_by(owner_id=user_normal.id).one().count == 0


def test_upload_unexpected_error_midway_keeps_earlier_results(app, db_session, logged_client_user, user_normal, fake_ai):
    fake_ai.responses = [fake_ai.default, AttributeError("bad")]
    r = _upload(logged_client_user,
                ("a.csv", b"a\n1\n", "text/csv"),
                ("b.csv", b"b\n2\n", "text/csv"))
    assert r.location.endswith("/dashboard")
    flashes = _flashes(logged_client_user)
    assert "a.csv uploaded and dashboard generated." in flashes
    assert "b.csv: Upload failed. Please try again." in flashes
    assert Dashboard.query.filter_by(owner_id=user_normal.id).count() == 1
    assert AuditLog.query.filter_by(user_id=user_normal.id, action="upload").count() == 1


def test_upload_unexpected_error_is_caught(app, db_session, logged_client_user, user_normal, monkeypatch):
    class _Broken:
        def run(self, owner_id, files):
            raise RuntimeError("boom")

    monkeypatch.setattr(dash_mod, "build_pipeline", lambda: _Broken())
    r = _upload(logged_client_user, ("sales.csv", b"a\n1\n", "text/csv"))
    assert r.status_code == 302
    assert "Upload failed. Please try again." in _flashes(logged_client_user)


def _seed(db_session, owner, raw=None):
    raw = raw or json.dumps({"summary": "s", "charts": [], "metrics": []})
    d = Dashboard(owner_id=owner.id, title="seed", file_name="seed.csv", file_type="text/csv",
                  file_size_bytes=4, encoded_content="YQoxCg==", ai_summary=raw,
                  charts_json=json.dumps([{"kind": "bar", "title": "B", "data": [{"name": "a", "value": 1}],
                                           "config": {}}]),
                  metrics_json=json.dumps([{"name": "M", "value": "1", "change": "+1%"}]))
    db_session.add(d); db_session.commit()
    return d.id


def test_view_own_dashboard_counts_views(app, db_session, logged_client_user, user_normal):
    did = _seed(db_session, user_normal)
    assert logged_client_user.get(f"/dashboards/{did}").status_code == 200
    assert logged_client_user.get(f"/dashboards/{did}").status_code == 200
    assert db_session.get(Dashboard, did).views == 2


def test_view_other_users_dashboard_is_404(app, db_session, logged_client_user, user_admin):
    did = _seed(db_session, user_admin)
    assert logged_client_user.get(f"/dashboards/{did}").status_code == 404


def test_export_png(app, db_session, logged_client_user, user_normal):
    did = _seed(db_session, user_normal)
    r = logged_client_user.get(f"/dashboards/{did}/export.png")
    assert r.status_code == 200
    assert r.mimetype == "image/png"
    assert r.data.startswith(b"\x89PNG")
    assert "seed-dashboard.png" in r.headers["Content-Disposition"]
    assert AuditLog.query.filter_by(user_id=user_normal.id, action="export").count() == 1


def test_export_pdf(app, db_session, logged_client_user, user_normal):
    did = _seed(db_session, user_normal)
    r = logged_client_user.get(f"/dashboards/{did}/export.pdf")
    assert r.status_code == 200
    assert r.mimetype == "application/pdf"
    assert r.data.startswith(b"%PDF")


def test_export_failure_is_flashed(app, db_session, logged_client_user, user_normal, monkeypatch):
    did = _seed(db_session, user_normal)

    def boom(_d):
        raise RuntimeError("renderer crashed")

    monkeypatch.setattr(dash_mod, "export_pdf", boom)
    r = logged_client_user.get(f"/dashboards/{did}/export.pdf")
    assert r.status_code == 302
    assert r.location.endswith(f"/dashboards/{did}")
    assert "Failed to export PDF." in _flashes(logged_client_user)


def test_export_other_users_dashboard_is_404(app, db_session, logged_client_user, user_admin):
    did = _seed(db_session, user_admin)
    assert logged_client_user.get(f"/dashboards/{did}/export.png").status_code == 404


def test_upload_limit_api(app, db_session, logged_client_user, user_normal):
    _set_count(db_session, user_normal, 3)
    r = logged_client_user.get("/api/upload-limit")
    assert r.status_code == 200
    body = r.get_json()
    assert body["ok"] is True
    assert body["count"] == 3
    assert body["max_daily"] == 10
    assert body["remaining"] == 7
    assert body["can_upload"] is True
