from fastapi import APIRouter

from formengine.models.answers import AnswerSet, SubmitRequest
from formengine.models.forms import Form, SaveFormResponse
from formengine.models.render import RenderedForm, SubmissionResponse
from formengine.services.builder import FormBuilder
from formengine.services.store import get_store
from formengine.services.views import BuilderView, SubmissionView

router = APIRouter(prefix="/api/forms", tags=["forms"])


@router.get("/{form_id}")
def get_form(form_id: str) -> Form:
    return get_store().get_form(form_id)


@router.post("")
def save_form(form: Form) -> SaveFormResponse:
    builder = FormBuilder(form)
    form_id = builder.save(get_store())
    return SaveFormResponse(id=form_id, version=builder.version)


@router.get("/{form_id}/preview")
def preview_form(form_id: str) -> RenderedForm:
    return BuilderView(get_store(), form_id).preview()


@router.get("/{form_id}/submission")
def get_submission(form_id: str, respondent_id: str) -> SubmissionResponse:
    return SubmissionView(get_store(), form_id, respondent_id).to_response()


@router.post("/{form_id}/submission")
def submit(form_id: str, request: SubmitRequest) -> AnswerSet:
    view = SubmissionView(get_store(), form_id, request.respondent_id)
    view.load_values(request.values)
    return view.submit()
