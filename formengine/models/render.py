from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field

from formengine.models.answers import AnswerSet
from formengine.models.enrollment import ParticipantRole

NO_ANSWER = "No answer"


class RenderMode(str, Enum):
    EDITABLE = "editable"
    READONLY = "readonly"
    PREVIEW = "preview"


class _BaseWidget(BaseModel):
    question_id: str
    label: str
    required: bool = False
    interactive: bool = False
    display: str = NO_ANSWER


class TextInputWidget(_BaseWidget):
    kind: Literal["text_input"] = "text_input"
    input_type: Literal["text", "number", "url", "email", "date"] = "text"
    value: str = ""


class TextAreaWidget(_BaseWidget):
    kind: Literal["text_area"] = "text_area"
    value: str = ""


class RadioGroupWidget(_BaseWidget):
    kind: Literal["radio_group"] = "radio_group"
    options: list[str]
    selected: str | None = None


class CheckboxGroupWidget(_BaseWidget):
    kind: Literal["checkbox_group"] = "checkbox_group"
    options: list[str]
    checked: list[str] = Field(default_factory=list)


class DropdownWidget(_BaseWidget):
    kind: Literal["dropdown"] = "dropdown"
    options: list[str]
    selected: str | None = None
    placeholder: str = "Choose an option"


class ToggleWidget(_BaseWidget):
    kind: Literal["toggle"] = "toggle"
    checked: bool | None = None


Widget = Annotated[
    Union[TextInputWidget, TextAreaWidget, RadioGroupWidget, CheckboxGroupWidget, DropdownWidget, ToggleWidget],
    Field(discriminator="kind"),
]


class RenderedForm(BaseModel):
    form_id: str | None = None
    title: str
    description: str = ""
    mode: RenderMode
    widgets: list[Widget]


class SubmissionResponse(BaseModel):
    form_id: str
    respondent_id: str
    role: ParticipantRole
    state: str
    editable: bool
    banner: str | None = None
    form: RenderedForm
    answer_set: AnswerSet | None = None
