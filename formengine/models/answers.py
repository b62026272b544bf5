from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field

# str for text/number/url/email/date/boolean ("true"/"false") and single-choice
# types, list[str] for multi_choice.
AnswerValue = str | list[str]


class AnswerStatus(str, Enum):
    DRAFT_LOCAL = "draft_local"
    SUBMITTED = "submitted"


class AnswerSet(BaseModel):
    id: str | None = None
    form_id: str
    owner_id: str  # team id in team mode, respondent id otherwise
    respondent_id: str  # attributed author; the team leader in team mode
    values: dict[str, AnswerValue] = Field(default_factory=dict)
    status: AnswerStatus = AnswerStatus.DRAFT_LOCAL
    created_at: datetime | None = None
    updated_at: datetime | None = None


class Violation(BaseModel):
    question_id: str
    label: str
    code: Literal["required", "invalid"]
    message: str


class SubmitRequest(BaseModel):
    respondent_id: str
    values: dict[str, AnswerValue] = Field(default_factory=dict)
