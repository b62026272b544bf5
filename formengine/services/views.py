"""Host-facing surfaces: one builder session and one respondent session.

Each view fetches its data once on entry. ``save``/``submit`` cross the store
boundary, so each view allows only one of them in flight at a time. A view
that has been unmounted still lets an in-flight call finish, but the result
is no longer written into the view.
"""

import logging
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime

from formengine.config import Settings
from formengine.exceptions import (
    ActionInFlightError,
    AdapterError,
    AnswerValidationError,
    ConflictError,
    GateError,
    SchemaError,
)
from formengine.models.answers import AnswerSet, AnswerValue
from formengine.models.enrollment import Enrollment
from formengine.models.render import RenderedForm, RenderMode, SubmissionResponse
from formengine.services.answers import AnswerStore
from formengine.services.builder import FormBuilder
from formengine.services.gate import GateState, SubmissionGate, utcnow
from formengine.services.renderer import apply_input, apply_toggle, render

logger = logging.getLogger(__name__)


class _View:
    def __init__(self, store):
        self.store = store
        self.mounted = True
        self.violations: list[str] = []
        self.banner: str | None = None
        self.toast: str | None = None
        self._in_flight = threading.Lock()

    @property
    def busy(self) -> bool:
        return self._in_flight.locked()

    def unmount(self) -> None:
        self.mounted = False

    @contextmanager
    def _exclusive(self, action: str) -> Iterator[None]:
        if not self._in_flight.acquire(blocking=False):
            raise ActionInFlightError(f"{action} is already in progress")
        try:
            yield
        finally:
            self._in_flight.release()

    def _report_adapter_error(self, action: str, e: AdapterError) -> None:
        logger.error("%s failed: %s", action, e)
        if not self.mounted:
            return
        if isinstance(e, ConflictError):
            self.toast = f"{action} rejected: {e}"
        else:
            self.toast = f"{action} failed: {e}. Please try again."


class BuilderView(_View):
    def __init__(self, store, form_id: str | None = None, settings: Settings | None = None):
        super().__init__(store)
        if form_id is None:
            self.builder = FormBuilder.new(settings)
        else:
            form = store.get_form(form_id)
            self.builder = FormBuilder(form, submission_count=store.count_answer_sets(form_id), settings=settings)
        self.preview_mode = False

    @property
    def form_id(self) -> str | None:
        return self.builder.form_id

    @property
    def can_save(self) -> bool:
        return not self.busy and not self.preview_mode

    def toggle_preview(self) -> bool:
        self.preview_mode = not self.preview_mode
        return self.preview_mode

    def preview(self) -> RenderedForm:
        return self.builder.preview()

    def save(self) -> str:
        with self._exclusive("Save"):
            try:
                form = self.builder.snapshot()
            except SchemaError as e:
                if self.mounted:
                    self.violations = e.violations
                raise
            try:
                form_id = self.store.upsert_form(form)
            except AdapterError as e:
                self._report_adapter_error("Save", e)
                raise
        logger.info("Saved form %s", form_id)
        if self.mounted:
            self.builder.mark_saved(form_id, form.version + 1)
            self.violations = []
            self.toast = "Form saved successfully!"
        return form_id


class SubmissionView(_View):
    def __init__(
        self,
        store,
        form_id: str,
        respondent_id: str,
        clock: Callable[[], datetime] = utcnow,
    ):
        super().__init__(store)
        self.respondent_id = respondent_id
        self.form = store.get_form(form_id)
        enrollment = store.get_enrollment(form_id, respondent_id) or Enrollment(
            form_id=form_id, respondent_id=respondent_id,
        )
        self.gate = SubmissionGate(self.form, enrollment, store, clock)
        self.answer_set: AnswerSet | None = self.gate.load_answer_set()
        self.answers = AnswerStore.deserialize(self.answer_set.values if self.answer_set else None)
        state = self.state
        self.banner = None if state.editable else state.reason

    @property
    def state(self) -> GateState:
        return self.gate.state()

    @property
    def mode(self) -> RenderMode:
        return self.state.mode

    @property
    def can_submit(self) -> bool:
        return not self.busy and self.state.editable

    def render(self) -> RenderedForm:
        return render(self.form, self.answers, self.mode)

    def set(self, question_id: str, value) -> None:
        apply_input(self.form, self.answers, self.mode, question_id, value)

    def toggle(self, question_id: str, option: str, included: bool) -> None:
        apply_toggle(self.form, self.answers, self.mode, question_id, option, included)

    def load_values(self, values: dict[str, AnswerValue]) -> None:
        """Merge a full set of values, e.g. from an HTTP body, into the current answers."""
        if not self.state.editable:
            raise GateError(self.state)
        self.answers.update(values)

    def submit(self) -> AnswerSet:
        with self._exclusive("Submit"):
            try:
                answer_set = self.gate.submit(self.answers)
            except GateError as e:
                if self.mounted:
                    self.banner = str(e)
                raise
            except AnswerValidationError as e:
                if self.mounted:
                    self.violations = [v.message for v in e.violations]
                raise
            except AdapterError as e:
                self._report_adapter_error("Submit", e)
                raise
        if self.mounted:
            self.answer_set = answer_set
            self.violations = []
            self.toast = "Submission saved."
        return answer_set

    def to_response(self) -> SubmissionResponse:
        state = self.state
        return SubmissionResponse(
            form_id=self.form.id,
            respondent_id=self.respondent_id,
            role=self.gate.role,
            state=state.value,
            editable=state.editable,
            banner=None if state.editable else state.reason,
            form=self.render(),
            answer_set=self.answer_set,
        )
