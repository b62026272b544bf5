import pytest
from unittest.mock import MagicMock

from formengine.exceptions import AdapterError, NotFound
from formengine.models.forms import Form, Question, QuestionType


@pytest.fixture
def open_form():
    return Form(
        id="open1",
        title="Feedback",
        questions=[Question(id="q_name", type=QuestionType.SHORT_TEXT, label="Name", required=True)],
        always_open=True,
    )


@pytest.fixture(autouse=True)
def mock_store(mocker, open_form):
    store = MagicMock()
    store.get_form.return_value = open_form
    store.count_answer_sets.return_value = 0
    store.get_enrollment.return_value = None
    store.get_answer_set.return_value = None
    store.upsert_answer_set.return_value = "as1"
    mocker.patch("formengine.mcp_server.get_store", return_value=store)
    return store


class TestFormsGet:
    def test_returns_dict(self):
        from formengine.mcp_server import forms_get
        result = forms_get.fn(form_id="open1")
        assert result["id"] == "open1"
        assert result["questions"][0]["type"] == "short_text"

    def test_not_found_returns_error(self, mock_store):
        mock_store.get_form.side_effect = NotFound("Form nope not found")
        from formengine.mcp_server import forms_get
        result = forms_get.fn(form_id="nope")
        assert result["error"] == "not_found"


class TestFormsPreview:
    def test_returns_widgets(self):
        from formengine.mcp_server import forms_preview
        result = forms_preview.fn(form_id="open1")
        assert result["mode"] == "preview"
        assert result["widgets"][0]["kind"] == "text_input"


class TestFormsSubmissionStatus:
    def test_returns_state(self):
        from formengine.mcp_server import forms_submission_status
        result = forms_submission_status.fn(form_id="open1", respondent_id="erin")
        assert result["state"] == "open"
        assert result["role"] == "individual"


class TestFormsSubmit:
    def test_submits(self, mock_store):
        from formengine.mcp_server import forms_submit
        result = forms_submit.fn(form_id="open1", respondent_id="erin", values={"q_name": "Erin"})
        assert result["id"] == "as1"
        assert result["values"] == {"q_name": "Erin"}
        mock_store.upsert_answer_set.assert_called_once()

    def test_validation_error(self, mock_store):
        from formengine.mcp_server import forms_submit
        result = forms_submit.fn(form_id="open1", respondent_id="erin", values={})
        assert result["error"] == "validation_error"
        assert result["violations"] == ["Please fill in the required field: Name"]
        mock_store.upsert_answer_set.assert_not_called()

    def test_adapter_error(self, mock_store):
        mock_store.upsert_answer_set.side_effect = AdapterError("down")
        from formengine.mcp_server import forms_submit
        result = forms_submit.fn(form_id="open1", respondent_id="erin", values={"q_name": "Erin"})
        assert result["error"] == "adapter_error"
