import pytest
from datetime import datetime, timedelta, timezone

from fastapi.testclient import TestClient

from formengine.models.enrollment import Enrollment, ParticipantRole
from formengine.models.forms import Form, Question, QuestionType
from formengine.services.store import JsonFileStore

# --- Canned data ---

NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)
HOUR = timedelta(hours=1)

SAMPLE_QUESTIONS = [
    Question(id="q_name", type=QuestionType.SHORT_TEXT, label="Project name", required=True),
    Question(id="q_summary", type=QuestionType.LONG_TEXT, label="Summary"),
    Question(id="q_track", type=QuestionType.SINGLE_CHOICE, label="Track", options=["Web", "ML"]),
    Question(id="q_stack", type=QuestionType.MULTI_CHOICE, label="Stack", options=["Python", "Rust", "Go"]),
    Question(id="q_size", type=QuestionType.DROPDOWN, label="Team size", options=["1", "2-3", "4+"]),
    Question(id="q_hours", type=QuestionType.NUMBER, label="Hours spent"),
    Question(id="q_repo", type=QuestionType.URL, label="Repository"),
    Question(id="q_email", type=QuestionType.EMAIL, label="Contact email"),
    Question(id="q_demo", type=QuestionType.DATE, label="Demo date"),
    Question(id="q_done", type=QuestionType.BOOLEAN, label="Completed"),
]


@pytest.fixture
def make_form():
    """Factory for a form with one question of every type, open from NOW-1h to NOW+1h."""
    def _make(**overrides) -> Form:
        fields = {
            "id": "form1",
            "title": "Week 1 Check-in",
            "description": "Tell us how the week went.",
            "questions": [q.model_copy(deep=True) for q in SAMPLE_QUESTIONS],
            "open_at": NOW - HOUR,
            "close_at": NOW + HOUR,
        }
        fields.update(overrides)
        return Form(**fields)
    return _make


@pytest.fixture
def sample_form(make_form) -> Form:
    return make_form()


@pytest.fixture
def store(tmp_path) -> JsonFileStore:
    return JsonFileStore(tmp_path / "store.json")


@pytest.fixture
def saved_form(store, sample_form) -> Form:
    """sample_form persisted in the store (version 1)."""
    store.upsert_form(sample_form)
    return store.get_form(sample_form.id)


@pytest.fixture
def team(store, saved_form):
    """A leader and a member of team1 enrolled on saved_form."""
    leader = Enrollment(
        form_id=saved_form.id, respondent_id="alice", role=ParticipantRole.LEADER,
        team_id="team1", leader_id="alice",
    )
    member = Enrollment(
        form_id=saved_form.id, respondent_id="bob", role=ParticipantRole.MEMBER,
        team_id="team1", leader_id="alice",
    )
    store.save_enrollment(leader)
    store.save_enrollment(member)
    return leader, member


@pytest.fixture
def api_client(mocker, store):
    """FastAPI TestClient for router tests, backed by a temporary JSON store."""
    mocker.patch("formengine.routers.forms.get_store", return_value=store)
    from formengine.main import api
    return TestClient(api)


@pytest.fixture
def now() -> datetime:
    return NOW
