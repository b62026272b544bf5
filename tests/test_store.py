import pytest
from unittest.mock import MagicMock

import requests

from formengine.exceptions import AdapterError, ConflictError, NotFound
from formengine.models.answers import AnswerSet, AnswerStatus
from formengine.models.enrollment import Enrollment, ParticipantRole
from formengine.models.forms import Form
from formengine.services.store import JsonFileStore, RestStore, get_store


class TestJsonFileStoreForms:
    def test_round_trip(self, store, sample_form):
        form_id = store.upsert_form(sample_form)
        assert form_id == "form1"
        stored = store.get_form(form_id)
        assert stored.version == 1
        assert stored.question_ids == sample_form.question_ids
        assert stored.open_at == sample_form.open_at

    def test_assigns_id_on_insert(self, store):
        form_id = store.upsert_form(Form(title="Fresh"))
        assert form_id
        assert store.get_form(form_id).title == "Fresh"

    def test_version_mismatch_is_rejected(self, store, saved_form):
        stale = saved_form.model_copy(update={"version": 0, "title": "Stale"})
        with pytest.raises(ConflictError):
            store.upsert_form(stale)
        assert store.get_form(saved_form.id).title == saved_form.title

    def test_missing_form(self, store):
        with pytest.raises(NotFound):
            store.get_form("nope")

    def test_corrupt_file(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")
        with pytest.raises(AdapterError):
            JsonFileStore(path).get_form("form1")


class TestJsonFileStoreAnswerSets:
    def _answer_set(self, **overrides):
        fields = {"form_id": "form1", "owner_id": "team1", "respondent_id": "alice", "values": {"q_name": "x"}}
        fields.update(overrides)
        return AnswerSet(**fields)

    def test_insert_and_lookup_by_owner(self, store):
        answer_set_id = store.upsert_answer_set(self._answer_set(status=AnswerStatus.SUBMITTED))
        found = store.get_answer_set("form1", "team1")
        assert found.id == answer_set_id
        assert found.status == AnswerStatus.SUBMITTED
        assert store.get_answer_set("form1", "alice") is None

    def test_second_insert_for_same_owner_is_rejected(self, store):
        store.upsert_answer_set(self._answer_set())
        with pytest.raises(ConflictError):
            store.upsert_answer_set(self._answer_set())
        assert store.count_answer_sets("form1") == 1

    def test_update_keeps_identity(self, store):
        answer_set_id = store.upsert_answer_set(self._answer_set())
        existing = store.get_answer_set("form1", "team1")
        store.upsert_answer_set(existing.model_copy(update={"values": {"q_name": "y"}}))
        assert store.count_answer_sets("form1") == 1
        assert store.get_answer_set("form1", "team1").values == {"q_name": "y"}
        assert store.get_answer_set("form1", "team1").id == answer_set_id

    def test_update_of_unknown_record(self, store):
        with pytest.raises(NotFound):
            store.upsert_answer_set(self._answer_set(id="ghost"))


class TestJsonFileStoreEnrollments:
    def test_role_defaults_to_individual(self, store):
        assert store.get_enrollment("form1", "zed") is None
        assert store.get_role("form1", "zed") == ParticipantRole.INDIVIDUAL

    def test_save_replaces_existing(self, store):
        store.save_enrollment(Enrollment(form_id="form1", respondent_id="bob", role=ParticipantRole.LEADER))
        store.save_enrollment(Enrollment(form_id="form1", respondent_id="bob", role=ParticipantRole.MEMBER))
        assert store.get_role("form1", "bob") == ParticipantRole.MEMBER


def _response(status_code=200, payload=None):
    resp = MagicMock()
    resp.status_code = status_code
    resp.content = b"[]" if payload is None else b"data"
    resp.text = "error body"
    resp.json.return_value = payload if payload is not None else []
    return resp


@pytest.fixture
def session():
    return MagicMock()


@pytest.fixture
def rest_store(session):
    return RestStore("https://db.example.com/", "secret", session=session)


class TestRestStore:
    def test_get_form(self, rest_store, session, sample_form):
        session.request.return_value = _response(payload=[sample_form.model_dump(mode="json")])
        form = rest_store.get_form("form1")
        assert form.question_ids == sample_form.question_ids
        method, url = session.request.call_args.args
        assert method == "GET"
        assert url == "https://db.example.com/rest/v1/forms"
        assert session.request.call_args.kwargs["params"]["id"] == "eq.form1"
        assert session.request.call_args.kwargs["headers"]["apikey"] == "secret"

    def test_get_form_not_found(self, rest_store, session):
        session.request.return_value = _response(payload=[])
        with pytest.raises(NotFound):
            rest_store.get_form("nope")

    def test_update_form_checks_version(self, rest_store, session, saved_form):
        session.request.return_value = _response(payload=[{"id": "form1"}])
        assert rest_store.upsert_form(saved_form) == "form1"
        kwargs = session.request.call_args.kwargs
        assert session.request.call_args.args[0] == "PATCH"
        assert kwargs["params"] == {"id": "eq.form1", "version": "eq.1"}
        assert kwargs["json"]["version"] == 2

    def test_stale_update_raises_conflict(self, rest_store, session, saved_form):
        session.request.return_value = _response(payload=[])
        with pytest.raises(ConflictError):
            rest_store.upsert_form(saved_form)

    def test_insert_new_form(self, rest_store, session):
        session.request.return_value = _response(payload=[{"id": "generated"}])
        assert rest_store.upsert_form(Form(title="New")) == "generated"
        assert session.request.call_args.args[0] == "POST"
        assert "id" not in session.request.call_args.kwargs["json"]

    def test_http_409_is_conflict(self, rest_store, session):
        session.request.return_value = _response(status_code=409)
        with pytest.raises(ConflictError):
            rest_store.upsert_answer_set(AnswerSet(form_id="f", owner_id="o", respondent_id="o"))

    def test_http_error_is_adapter_error(self, rest_store, session):
        session.request.return_value = _response(status_code=503)
        with pytest.raises(AdapterError):
            rest_store.count_answer_sets("form1")

    def test_transport_error_is_adapter_error(self, rest_store, session):
        session.request.side_effect = requests.ConnectionError("down")
        with pytest.raises(AdapterError):
            rest_store.get_answer_set("form1", "team1")

    def test_get_role_from_enrollment(self, rest_store, session):
        session.request.return_value = _response(payload=[
            {"form_id": "form1", "respondent_id": "bob", "role": "member", "team_id": "t", "leader_id": "alice"},
        ])
        assert rest_store.get_role("form1", "bob") == ParticipantRole.MEMBER

    def test_requires_url(self):
        with pytest.raises(AdapterError):
            RestStore("", "key", session=MagicMock())


class TestGetStore:
    def test_json_backend(self, mocker, tmp_path):
        settings = MagicMock(store_backend="json", store_file=tmp_path / "s.json")
        mocker.patch("formengine.services.store.get_settings", return_value=settings)
        assert isinstance(get_store(), JsonFileStore)

    def test_rest_backend(self, mocker):
        settings = MagicMock(store_backend="rest", rest_url="https://db.example.com", rest_api_key="k")
        mocker.patch("formengine.services.store.get_settings", return_value=settings)
        mocker.patch("formengine.services.store.get_session", return_value=MagicMock())
        assert isinstance(get_store(), RestStore)
