from sqlmodel import select

from aiassess.models import AuditLog
from aiassess.seed.service import run_seed_action


def test_list_frameworks_is_deduplicated(client, session, seeded):
    run_seed_action(session=session, action="seed-frameworks")

    response = client.get("/api/v1/frameworks/")

    assert response.status_code == 200
    ids = [f["framework_id"] for f in response.json()]
    assert len(ids) == 9
    assert len(set(ids)) == 9


def test_list_frameworks_filters_by_category_and_audience(client, seeded):
    tech = client.get("/api/v1/frameworks/", params={"category": "tech-focused"}).json()
    assert {f["framework_id"] for f in tech} == {"OWASP_LLM", "OWASP_API"}

    executive = client.get("/api/v1/frameworks/", params={"audience": "Executive"}).json()
    assert executive
    assert all("Executive" in f["target_audience"] for f in executive)


def test_read_framework(client, seeded):
    response = client.get("/api/v1/frameworks/LGPD")

    assert response.status_code == 200
    assert response.json()["short_name"]
    assert client.get("/api/v1/frameworks/SOC2").status_code == 404


def test_selection_defaults_to_default_enabled_frameworks(client, seeded, user_headers):
    response = client.get("/api/v1/frameworks/selection", headers=user_headers)

    assert response.status_code == 200
    assert response.json() == {
        "enabled_frameworks": ["ISO_27001_27002", "LGPD", "NIST_AI_RMF"],
        "selected_frameworks": [],
    }


def test_update_selection_is_audit_logged(client, session, seeded, user_id, user_headers):
    payload = {"enabled_frameworks": ["NIST_AI_RMF", "OWASP_LLM"], "selected_frameworks": ["OWASP_LLM"]}

    response = client.put("/api/v1/frameworks/selection", json=payload, headers=user_headers)

    assert response.status_code == 200
    assert response.json() == payload
    assert client.get("/api/v1/frameworks/selection", headers=user_headers).json() == payload

    log = session.exec(select(AuditLog)).one()
    assert log.entity_type == "setting"
    assert log.action == "update"
    assert log.user_id == user_id
    assert log.changes["selected_frameworks"] == {"from": [], "to": ["OWASP_LLM"]}


def test_update_selection_rejects_unknown_ids(client, session, seeded, user_headers):
    payload = {"enabled_frameworks": ["NIST_AI_RMF", "SOC2"], "selected_frameworks": []}

    response = client.put("/api/v1/frameworks/selection", json=payload, headers=user_headers)

    assert response.status_code == 422
    assert "SOC2" in response.json()["detail"]
    assert session.exec(select(AuditLog)).all() == []
