import re
from collections.abc import Mapping
from datetime import date

from pydantic import AnyHttpUrl, TypeAdapter, ValidationError

from formengine.models.answers import AnswerValue, Violation
from formengine.models.forms import Form, Question, QuestionType

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_NUMBER = TypeAdapter(float)
_URL = TypeAdapter(AnyHttpUrl)
_DATE = TypeAdapter(date)

BOOLEAN_VALUES = ("true", "false")


def _copy(value: AnswerValue) -> AnswerValue:
    return list(value) if isinstance(value, list) else value


def is_empty(value: AnswerValue | None) -> bool:
    if value is None:
        return True
    if isinstance(value, list):
        return len(value) == 0
    return value.strip() == ""


def _parses(adapter: TypeAdapter, value: str) -> bool:
    try:
        adapter.validate_python(value)
    except ValidationError:
        return False
    return True


def _format_problem(question: Question, value: AnswerValue) -> str | None:
    """Return why a non-empty value does not fit the question type, or None."""
    qtype = question.type
    if qtype == QuestionType.MULTI_CHOICE:
        if not isinstance(value, list):
            return "expects a list of options"
        unknown = [v for v in value if v not in question.visible_options]
        if unknown:
            return f"unknown option(s): {', '.join(unknown)}"
        return None
    if isinstance(value, list):
        return "expects a single value"
    if qtype in (QuestionType.SINGLE_CHOICE, QuestionType.DROPDOWN):
        if value not in question.visible_options:
            return f"unknown option: {value}"
    elif qtype == QuestionType.NUMBER:
        if not _parses(_NUMBER, value.strip()):
            return "must be a number"
    elif qtype == QuestionType.URL:
        if not _parses(_URL, value.strip()):
            return "must be an http(s) URL"
    elif qtype == QuestionType.EMAIL:
        if not _EMAIL_RE.match(value.strip()):
            return "must be an email address"
    elif qtype == QuestionType.DATE:
        if not _parses(_DATE, value.strip()):
            return "must be an ISO date (YYYY-MM-DD)"
    elif qtype == QuestionType.BOOLEAN:
        if value not in BOOLEAN_VALUES:
            return "must be true or false"
    return None


class AnswerStore:
    """One respondent's answers, keyed by question id.

    Keys for questions that are no longer on the form are kept as-is and
    serialized back out; they are only ignored by validation and rendering.
    """

    def __init__(self, values: Mapping[str, AnswerValue] | None = None):
        self._values: dict[str, AnswerValue] = {}
        for question_id, value in (values or {}).items():
            self._values[question_id] = _copy(value)

    def __contains__(self, question_id: str) -> bool:
        return question_id in self._values

    def __len__(self) -> int:
        return len(self._values)

    def get(self, question_id: str, default: AnswerValue | None = None) -> AnswerValue | None:
        value = self._values.get(question_id, default)
        return _copy(value) if value is not None else None

    def set(self, question_id: str, value: AnswerValue) -> None:
        self._values[question_id] = _copy(value)

    def update(self, values: Mapping[str, AnswerValue]) -> None:
        for question_id, value in values.items():
            self.set(question_id, value)

    def toggle(self, question_id: str, option: str, included: bool) -> None:
        """Add or remove a single option of a multi-choice answer."""
        current = self._values.get(question_id)
        selected = list(current) if isinstance(current, list) else []
        if included and option not in selected:
            selected.append(option)
        elif not included and option in selected:
            selected.remove(option)
        self._values[question_id] = selected

    def clear(self, question_id: str) -> None:
        self._values.pop(question_id, None)

    def validate_against(self, form: Form) -> list[Violation]:
        """Return violations in question order; an empty list means the answers are valid."""
        violations = []
        for question in form.questions:
            value = self._values.get(question.id)
            if is_empty(value):
                if question.required:
                    violations.append(Violation(
                        question_id=question.id,
                        label=question.label,
                        code="required",
                        message=f"Please fill in the required field: {question.label}",
                    ))
                continue
            problem = _format_problem(question, value)
            if problem:
                violations.append(Violation(
                    question_id=question.id,
                    label=question.label,
                    code="invalid",
                    message=f"{question.label}: {problem}",
                ))
        return violations

    def visible_values(self, form: Form) -> dict[str, AnswerValue]:
        """Values for questions currently on the form, in form order."""
        return {q.id: _copy(self._values[q.id]) for q in form.questions if q.id in self._values}

    def serialize(self) -> dict[str, AnswerValue]:
        return {question_id: _copy(value) for question_id, value in self._values.items()}

    @classmethod
    def deserialize(cls, values: Mapping[str, AnswerValue] | None) -> "AnswerStore":
        return cls(values)
