import inspect
import json
from unittest.mock import patch

import pytest

from aiassess import crud
from aiassess.api.routes.seed import _seed_progress
from aiassess.models import Domain, Framework, Question, Subcategory
from aiassess.seed.fixtures import load_fixture
from aiassess.seed.service import (
    SeedError,
    UnknownSeedAction,
    get_seed_status,
    iter_seed_all,
    run_seed_action,
    seed_table,
)


def test_bundled_fixtures_are_consistent():
    domains = {d["domain_id"] for d in load_fixture("domains")}
    subcats = {s["subcat_id"]: s["domain_id"] for s in load_fixture("subcategories")}
    questions = load_fixture("questions")

    assert len(load_fixture("frameworks")) == 9
    assert len(domains) == 6
    assert len(subcats) == 18
    assert len(questions) == 38
    assert set(subcats.values()) <= domains
    for question in questions:
        assert subcats[question["subcat_id"]] == question["domain_id"]


def test_unknown_fixture_is_rejected():
    with pytest.raises(ValueError):
        load_fixture("users")


def test_seeding_twice_duplicates_rows(session):
    first = run_seed_action(session=session, action="seed-frameworks")
    second = run_seed_action(session=session, action="seed-frameworks")

    assert first.count == second.count == 9
    assert first.message == "Frameworks seeded successfully"
    assert crud.count_rows(session=session, model=Framework) == 18
    assert len(crud.list_frameworks(session=session)) == 9


def test_questions_message_reports_count(session):
    result = run_seed_action(session=session, action="seed-questions")

    assert result.count == 38
    assert result.message == "38 questions seeded successfully"


def test_payload_rows_replace_bundled_fixture(session):
    rows = [{"domain_id": "OPS", "domain_name": "Operações", "display_order": 7}]

    result = run_seed_action(session=session, action="seed-domains", data={"domains": rows})

    assert result.count == 1
    assert [d.domain_id for d in crud.list_domains(session=session)] == ["OPS"]


def test_seed_all_reports_counts_per_table(session):
    result = run_seed_action(session=session, action="seed-all")

    assert result.counts == {"frameworks": 9, "domains": 6, "subcategories": 18, "questions": 38}
    assert crud.count_rows(session=session, model=Domain) == 6
    assert crud.count_rows(session=session, model=Subcategory) == 18
    assert crud.count_rows(session=session, model=Question) == 38


@pytest.mark.parametrize("action", [None, "", "seed-users", "SEED-ALL"])
def test_unknown_action_lists_valid_actions(session, action):
    with pytest.raises(UnknownSeedAction) as exc_info:
        run_seed_action(session=session, action=action)

    assert str(exc_info.value) == (
        "Invalid action. Valid actions: seed-frameworks, seed-domains, "
        "seed-subcategories, seed-questions, seed-all"
    )


def test_failure_keeps_earlier_batches(session):
    rows = load_fixture("questions")[:4]
    rows[3] = {**rows[3], "question_text": None}

    with pytest.raises(SeedError):
        seed_table(session=session, table="questions", rows=rows, batch_size=2)

    assert crud.count_rows(session=session, model=Question) == 2


def test_batch_size_comes_from_settings(session):
    with patch("aiassess.seed.service.settings.SEED_BATCH_SIZE", 10):
        with patch.object(session, "commit", wraps=session.commit) as commit:
            seed_table(session=session, table="questions", rows=load_fixture("questions"))

    assert commit.call_count == 4


def test_iter_seed_all_emits_progress_in_dependency_order(session):
    events = list(iter_seed_all(session=session))

    assert events[0]["status"] == "started"
    assert [e["table"] for e in events if e["status"] == "table_done"] == [
        "frameworks",
        "domains",
        "subcategories",
        "questions",
    ]
    assert events[-1] == {"status": "completed", "message": "All data seeded successfully"}


def test_progress_stream_ends_with_error_event(session):
    bad = {"frameworks": [{"framework_id": "X"}]}

    stream = _seed_progress(session, bad)

    assert inspect.isgenerator(stream)
    events = [json.loads(chunk) for chunk in stream]

    assert events[0]["status"] == "started"
    assert events[-1]["status"] == "error"
    assert crud.count_rows(session=session, model=Framework) == 0


def test_status_reports_counts(session):
    assert get_seed_status(session=session).is_empty is True

    run_seed_action(session=session, action="seed-domains")
    status = get_seed_status(session=session)

    assert status.is_empty is False
    assert status.counts == {"frameworks": 0, "domains": 6, "subcategories": 0, "questions": 0}
