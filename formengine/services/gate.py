import logging
from collections.abc import Callable
from datetime import datetime, timezone
from enum import Enum

from formengine.exceptions import AnswerValidationError, GateError
from formengine.models.answers import AnswerSet, AnswerStatus
from formengine.models.enrollment import Enrollment, InvitationStatus, ParticipantRole
from formengine.models.forms import Form
from formengine.models.render import RenderMode
from formengine.services.answers import AnswerStore

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class GateState(str, Enum):
    OPEN = "open"
    LOCKED_FUTURE = "locked_future"
    LOCKED_PAST = "locked_past"
    LOCKED_ROLE = "locked_role"

    @property
    def editable(self) -> bool:
        return self is GateState.OPEN

    @property
    def mode(self) -> RenderMode:
        return RenderMode.EDITABLE if self.editable else RenderMode.READONLY

    @property
    def reason(self) -> str:
        return _REASONS[self]


_REASONS = {
    GateState.OPEN: "Submissions are open.",
    GateState.LOCKED_FUTURE: "Submissions are not open yet.",
    GateState.LOCKED_PAST: "The submission deadline has passed.",
    GateState.LOCKED_ROLE: "Only the team leader can submit; you are viewing the team's submission.",
}


def compute_gate_state(
    now: datetime,
    open_at: datetime | None,
    close_at: datetime | None,
    always_open: bool,
    role: ParticipantRole,
) -> GateState:
    """Pure state function of time window and role.

    A missing ``open_at`` means open since forever and a missing ``close_at``
    means no deadline. Members are locked regardless of time.
    """
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    if role == ParticipantRole.MEMBER:
        return GateState.LOCKED_ROLE
    if open_at is not None and now < open_at:
        return GateState.LOCKED_FUTURE
    if always_open or close_at is None or now <= close_at:
        return GateState.OPEN
    return GateState.LOCKED_PAST


class SubmissionGate:
    def __init__(
        self,
        form: Form,
        enrollment: Enrollment,
        adapter,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.form = form
        self.enrollment = enrollment
        self.adapter = adapter
        self.clock = clock

    @property
    def role(self) -> ParticipantRole:
        return self.enrollment.role

    def state(self, now: datetime | None = None) -> GateState:
        if self.enrollment.invitation_status == InvitationStatus.PENDING:
            return GateState.LOCKED_ROLE
        return compute_gate_state(
            now or self.clock(),
            self.form.open_at,
            self.form.close_at,
            self.form.always_open,
            self.role,
        )

    def mode(self, now: datetime | None = None) -> RenderMode:
        return self.state(now).mode

    def load_answer_set(self) -> AnswerSet | None:
        """Existing answer set for this respondent; members get their leader's record.

        Pending invitees see nothing, and a member with no team or leader has
        no record to resolve to.
        """
        if self.enrollment.invitation_status == InvitationStatus.PENDING:
            return None
        owner_id = self.enrollment.owner_id
        if owner_id is None:
            return None
        return self.adapter.get_answer_set(self.form.id, owner_id)

    def submit(self, answers: AnswerStore, now: datetime | None = None) -> AnswerSet:
        """Validate and write the answers, updating the existing record if there is one."""
        now = now or self.clock()
        state = self.state(now)
        if not state.editable:
            raise GateError(state)
        violations = answers.validate_against(self.form)
        if violations:
            raise AnswerValidationError(violations)

        existing = self.load_answer_set()
        if existing is not None:
            answer_set = existing.model_copy(update={
                "values": answers.serialize(),
                "status": AnswerStatus.SUBMITTED,
                "updated_at": now,
            })
        else:
            answer_set = AnswerSet(
                form_id=self.form.id,
                owner_id=self.enrollment.owner_id,
                respondent_id=self.enrollment.author_id,
                values=answers.serialize(),
                status=AnswerStatus.SUBMITTED,
                created_at=now,
                updated_at=now,
            )
        answer_set_id = self.adapter.upsert_answer_set(answer_set)
        logger.info(
            "%s answer set %s for form %s (owner %s)",
            "Updated" if existing is not None else "Created",
            answer_set_id, self.form.id, answer_set.owner_id,
        )
        return answer_set.model_copy(update={"id": answer_set_id})
