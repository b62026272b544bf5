from collections import Counter

from formengine.exceptions import SchemaError
from formengine.models.forms import Form, Question, uses_options


def _question_violations(question: Question) -> list[str]:
    violations = []
    if not question.label.strip():
        violations.append(f"Question {question.id}: label must not be empty")
    if uses_options(question.type) and not question.options:
        violations.append(f"Question {question.id}: {question.type.value} needs at least one option")
    return violations


def validate_question(question: Question) -> None:
    """Raise SchemaError if the question has no label or a choice type without options."""
    violations = _question_violations(question)
    if violations:
        raise SchemaError(violations)


def form_violations(form: Form) -> list[str]:
    """Collect every schema violation of a form, in question order."""
    violations = []
    if not form.title.strip():
        violations.append("Form title must not be empty")
    if not form.questions:
        violations.append("Form needs at least one question")
    for question in form.questions:
        violations.extend(_question_violations(question))
    counts = Counter(q.id for q in form.questions)
    for question_id, count in counts.items():
        if count > 1:
            violations.append(f"Question id {question_id} is used {count} times")
    if (
        not form.always_open
        and form.open_at is not None
        and form.close_at is not None
        and form.close_at < form.open_at
    ):
        violations.append("Close time must not be before open time")
    return violations


def validate_form(form: Form) -> None:
    violations = form_violations(form)
    if violations:
        raise SchemaError(violations)
