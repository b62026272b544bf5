from formengine.exceptions import GateError, NotFound
from formengine.models.answers import AnswerValue
from formengine.models.forms import Form, Question, QuestionType
from formengine.models.render import (
    NO_ANSWER,
    CheckboxGroupWidget,
    DropdownWidget,
    RadioGroupWidget,
    RenderedForm,
    RenderMode,
    TextAreaWidget,
    TextInputWidget,
    ToggleWidget,
    Widget,
)
from formengine.services.answers import AnswerStore, is_empty
from formengine.services.schema import validate_form

_INPUT_TYPES = {
    QuestionType.SHORT_TEXT: "text",
    QuestionType.NUMBER: "number",
    QuestionType.URL: "url",
    QuestionType.EMAIL: "email",
    QuestionType.DATE: "date",
}


def _display(value: AnswerValue | None) -> str:
    if is_empty(value):
        return NO_ANSWER
    if isinstance(value, list):
        return ", ".join(value)
    return value


def _single(value: AnswerValue | None) -> str | None:
    return value if isinstance(value, str) and value else None


def _build_widget(question: Question, value: AnswerValue | None, interactive: bool) -> Widget:
    """Map a question to its widget. Every QuestionType must be handled here."""
    common = {
        "question_id": question.id,
        "label": question.label,
        "required": question.required,
        "interactive": interactive,
        "display": _display(value),
    }
    qtype = question.type
    if qtype in _INPUT_TYPES:
        return TextInputWidget(input_type=_INPUT_TYPES[qtype], value=_single(value) or "", **common)
    if qtype == QuestionType.LONG_TEXT:
        return TextAreaWidget(value=_single(value) or "", **common)
    if qtype == QuestionType.SINGLE_CHOICE:
        return RadioGroupWidget(options=question.visible_options, selected=_single(value), **common)
    if qtype == QuestionType.MULTI_CHOICE:
        checked = list(value) if isinstance(value, list) else []
        return CheckboxGroupWidget(options=question.visible_options, checked=checked, **common)
    if qtype == QuestionType.DROPDOWN:
        return DropdownWidget(options=question.visible_options, selected=_single(value), **common)
    if qtype == QuestionType.BOOLEAN:
        checked = None if _single(value) is None else value == "true"
        return ToggleWidget(checked=checked, **common)
    raise ValueError(f"Unsupported question type: {qtype}")


def render(form: Form, answers: AnswerStore, mode: RenderMode) -> RenderedForm:
    """Produce one widget per question, in form order.

    Live views (editable/readonly) re-check the schema before display; the
    builder preview renders drafts as they are.
    """
    if mode != RenderMode.PREVIEW:
        validate_form(form)
    interactive = mode == RenderMode.EDITABLE
    widgets = [_build_widget(q, answers.get(q.id), interactive) for q in form.questions]
    return RenderedForm(
        form_id=form.id,
        title=form.title,
        description=form.description,
        mode=mode,
        widgets=widgets,
    )


def _editable_question(form: Form, mode: RenderMode, question_id: str) -> Question:
    if mode != RenderMode.EDITABLE:
        raise GateError(message=f"Form is in {mode.value} mode and does not accept answers")
    question = form.get_question(question_id)
    if question is None:
        raise NotFound(f"Question {question_id} not found")
    return question


def apply_input(form: Form, answers: AnswerStore, mode: RenderMode, question_id: str, value) -> None:
    """Route a widget input event into the answer store.

    Single-choice and dropdown inputs replace the previous selection; an empty
    value clears it. Booleans are stored as "true"/"false".
    """
    question = _editable_question(form, mode, question_id)
    qtype = question.type
    if qtype == QuestionType.MULTI_CHOICE:
        raise ValueError(f"Question {question_id} is multi-choice; use apply_toggle")
    if qtype == QuestionType.BOOLEAN:
        if isinstance(value, bool):
            value = "true" if value else "false"
        if value not in ("true", "false"):
            raise ValueError(f"Question {question_id} expects true or false")
        answers.set(question_id, value)
        return
    if not isinstance(value, str):
        raise ValueError(f"Question {question_id} expects a string value")
    if qtype in (QuestionType.SINGLE_CHOICE, QuestionType.DROPDOWN):
        if value == "":
            answers.clear(question_id)
            return
        if value not in question.visible_options:
            raise ValueError(f"{value!r} is not an option of question {question_id}")
    answers.set(question_id, value)


def apply_toggle(form: Form, answers: AnswerStore, mode: RenderMode, question_id: str, option: str, included: bool) -> None:
    question = _editable_question(form, mode, question_id)
    if question.type != QuestionType.MULTI_CHOICE:
        raise ValueError(f"Question {question_id} is not multi-choice")
    if option not in question.visible_options:
        raise ValueError(f"{option!r} is not an option of question {question_id}")
    answers.toggle(question_id, option, included)
