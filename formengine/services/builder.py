import logging
from datetime import datetime

from formengine.config import Settings, get_settings
from formengine.exceptions import NotFound, SchemaError
from formengine.models.forms import Form, Question, QuestionType, uses_options
from formengine.models.render import RenderedForm, RenderMode
from formengine.services import collection
from formengine.services.answers import AnswerStore
from formengine.services.collection import ReorderableCollection
from formengine.services.renderer import render
from formengine.services.schema import validate_form

logger = logging.getLogger(__name__)


def _clone_question(question: Question, new_id: str) -> Question:
    options = list(question.options) if question.options is not None else None
    return question.model_copy(update={"id": new_id, "options": options})


class FormBuilder:
    """Editable draft of a Form.

    Questions live in a ReorderableCollection so that the id held by the
    option editor (``active_question_id``) stays valid across moves and
    duplications. Nothing is persisted until ``save``.
    """

    def __init__(self, form: Form | None = None, *, submission_count: int = 0, settings: Settings | None = None):
        self._settings = settings or get_settings()
        form = form or Form()
        self.form_id = form.id
        self.version = form.version
        self.title = form.title
        self.description = form.description
        self.open_at = form.open_at
        self.close_at = form.close_at
        self.always_open = form.always_open
        self.submission_count = submission_count
        self.questions: ReorderableCollection[Question] = ReorderableCollection(
            form.questions,
            clone=_clone_question,
            id_prefix=self._settings.question_id_prefix,
            min_size=1,
        )
        self.active_question_id: str | None = None

    @classmethod
    def new(cls, settings: Settings | None = None) -> "FormBuilder":
        """Blank draft with one default question, ready for editing."""
        builder = cls(Form(title="Untitled Form"), settings=settings)
        builder.add_question()
        return builder

    # --- form-level fields ---

    def set_details(self, title: str | None = None, description: str | None = None) -> None:
        if title is not None:
            self.title = title
        if description is not None:
            self.description = description

    def set_schedule(
        self,
        open_at: datetime | None = None,
        close_at: datetime | None = None,
        always_open: bool = False,
    ) -> None:
        self.open_at = open_at
        self.close_at = close_at
        self.always_open = always_open

    # --- questions ---

    def _default_option(self, number: int) -> str:
        return f"{self._settings.default_option_label} {number}"

    def get_question(self, question_id: str) -> Question:
        return self.questions.get(question_id)

    def select(self, question_id: str | None) -> None:
        if question_id is not None:
            self.questions.get(question_id)
        self.active_question_id = question_id

    def add_question(self) -> Question:
        question_type = QuestionType(self._settings.default_question_type)
        question = Question(
            id=self.questions.new_id(),
            type=question_type,
            label=self._settings.default_question_label,
            required=False,
            options=[self._default_option(1)] if uses_options(question_type) else None,
        )
        self.questions.append(question)
        self.active_question_id = question.id
        return question

    def update_question(self, question_id: str, *, label: str | None = None, required: bool | None = None) -> Question:
        question = self.questions.get(question_id)
        changes = {}
        if label is not None:
            changes["label"] = label
        if required is not None:
            changes["required"] = required
        updated = question.model_copy(update=changes)
        self.questions.replace(question_id, updated)
        return updated

    def change_type(self, question_id: str, new_type: QuestionType) -> Question:
        """Switch a question's type.

        Options are never dropped: a non-choice type just hides them, and a
        choice type without options gets one default option.
        """
        question = self.questions.get(question_id)
        new_type = QuestionType(new_type)
        if new_type == question.type:
            return question
        if self.submission_count:
            logger.warning(
                "Changing type of question %s on form %s from %s to %s; %d submission(s) already reference it",
                question_id, self.form_id, question.type.value, new_type.value, self.submission_count,
            )
        options = list(question.options) if question.options is not None else None
        if uses_options(new_type) and not options:
            options = [self._default_option(1)]
        updated = question.model_copy(update={"type": new_type, "options": options})
        self.questions.replace(question_id, updated)
        return updated

    def duplicate_question(self, question_id: str) -> Question:
        copy_id = self.questions.duplicate(question_id)
        self.active_question_id = copy_id
        return self.questions.get(copy_id)

    def remove_question(self, question_id: str) -> None:
        self.questions.remove(question_id)
        if self.active_question_id == question_id:
            self.active_question_id = None

    def move_question(
        self,
        question_id: str,
        *,
        before: str | None = None,
        after: str | None = None,
        to_end: bool = False,
    ) -> None:
        self.questions.move(question_id, before=before, after=after, to_end=to_end)

    # --- options of a choice question ---

    def _set_options(self, question_id: str, options: list[str]) -> Question:
        updated = self.questions.get(question_id).model_copy(update={"options": options})
        self.questions.replace(question_id, updated)
        return updated

    def _choice_question(self, question_id: str) -> Question:
        question = self.questions.get(question_id)
        if not uses_options(question.type):
            logger.warning("Question %s (%s) has no editable options", question_id, question.type.value)
            raise NotFound(f"Question {question_id} does not use options")
        return question

    def add_option(self, question_id: str, label: str | None = None) -> Question:
        options = list(self._choice_question(question_id).options or [])
        options.append(label if label is not None else self._default_option(len(options) + 1))
        return self._set_options(question_id, options)

    def update_option(self, question_id: str, index: int, label: str) -> Question:
        options = self._choice_question(question_id).options or []
        return self._set_options(question_id, collection.replace_index(options, index, label))

    def remove_option(self, question_id: str, index: int) -> Question:
        options = self._choice_question(question_id).options or []
        if len(options) <= 1:
            raise SchemaError([f"Question {question_id} must keep at least one option"])
        return self._set_options(question_id, collection.remove_index(options, index))

    def move_option(self, question_id: str, source: int, target: int) -> Question:
        options = self._choice_question(question_id).options or []
        return self._set_options(question_id, collection.move_index(options, source, target))

    # --- output ---

    def to_form(self) -> Form:
        return Form(
            id=self.form_id,
            title=self.title,
            description=self.description,
            questions=[q.model_copy(deep=True) for q in self.questions],
            open_at=self.open_at,
            close_at=self.close_at,
            always_open=self.always_open,
            version=self.version,
        )

    def preview(self) -> RenderedForm:
        """Render the draft without accepting answers."""
        return render(self.to_form(), AnswerStore(), RenderMode.PREVIEW)

    def snapshot(self) -> Form:
        """Validated copy of the draft, ready to persist."""
        form = self.to_form()
        validate_form(form)
        return form

    def mark_saved(self, form_id: str, version: int) -> None:
        self.form_id = form_id
        self.version = version

    def save(self, adapter) -> str:
        """Validate and upsert the whole form in one write. Returns the persisted id."""
        form = self.snapshot()
        form_id = adapter.upsert_form(form)
        self.mark_saved(form_id, form.version + 1)
        logger.info("Saved form %s (version %d)", form_id, self.version)
        return form_id
