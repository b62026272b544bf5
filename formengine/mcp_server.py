from fastmcp import FastMCP

from formengine.exceptions import (
    AdapterError,
    AnswerValidationError,
    ConflictError,
    GateError,
    NotFound,
    SchemaError,
)
from formengine.models.answers import AnswerValue
from formengine.services.store import get_store
from formengine.services.views import BuilderView, SubmissionView

mcp = FastMCP("Formengine")

_FORM_ERRORS = (SchemaError, AnswerValidationError, GateError, NotFound, AdapterError)


def _handle_mcp_error(e: Exception) -> dict:
    """Convert exceptions to agent-friendly error dicts."""
    if isinstance(e, (SchemaError, AnswerValidationError)):
        violations = e.violations
        if isinstance(e, AnswerValidationError):
            violations = [v.message for v in e.violations]
        return {"error": "validation_error", "message": str(e), "violations": violations}
    if isinstance(e, GateError):
        state = e.state.value if e.state is not None else None
        return {"error": "gate_closed", "message": str(e), "state": state}
    if isinstance(e, NotFound):
        return {"error": "not_found", "message": str(e)}
    if isinstance(e, ConflictError):
        return {"error": "conflict", "message": str(e), "action": "Reload the form and apply the change again"}
    if isinstance(e, AdapterError):
        return {"error": "adapter_error", "message": str(e), "action": "Retry the call"}
    return {"error": "unknown_error", "message": str(e)}


@mcp.tool
def forms_get(form_id: str) -> dict:
    """Get a form's schema: title, description, ordered questions and open/close schedule."""
    try:
        return get_store().get_form(form_id).model_dump(mode="json")
    except _FORM_ERRORS as e:
        return _handle_mcp_error(e)


@mcp.tool
def forms_preview(form_id: str) -> dict:
    """Render a form as non-interactive widgets, one per question, in form order."""
    try:
        return BuilderView(get_store(), form_id).preview().model_dump(mode="json")
    except _FORM_ERRORS as e:
        return _handle_mcp_error(e)


@mcp.tool
def forms_submission_status(form_id: str, respondent_id: str) -> dict:
    """Show whether a respondent can submit a form right now (state, role) and their current answers.
    Team members see their team leader's submission."""
    try:
        return SubmissionView(get_store(), form_id, respondent_id).to_response().model_dump(mode="json")
    except _FORM_ERRORS as e:
        return _handle_mcp_error(e)


@mcp.tool
def forms_submit(form_id: str, respondent_id: str, values: dict[str, AnswerValue]) -> dict:
    """Submit answers for a respondent, keyed by question id. Multi-choice answers are lists of options,
    everything else is a string (booleans as "true"/"false"). Re-submitting edits the existing answers."""
    try:
        view = SubmissionView(get_store(), form_id, respondent_id)
        view.load_values(values)
        return view.submit().model_dump(mode="json")
    except _FORM_ERRORS as e:
        return _handle_mcp_error(e)
