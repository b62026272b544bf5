from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field, field_validator


class QuestionType(str, Enum):
    SHORT_TEXT = "short_text"
    LONG_TEXT = "long_text"
    SINGLE_CHOICE = "single_choice"
    MULTI_CHOICE = "multi_choice"
    DROPDOWN = "dropdown"
    NUMBER = "number"
    URL = "url"
    EMAIL = "email"
    DATE = "date"
    BOOLEAN = "boolean"


CHOICE_TYPES = frozenset({QuestionType.SINGLE_CHOICE, QuestionType.MULTI_CHOICE, QuestionType.DROPDOWN})


def uses_options(question_type: QuestionType) -> bool:
    return question_type in CHOICE_TYPES


class Question(BaseModel):
    id: str
    type: QuestionType = QuestionType.SHORT_TEXT
    label: str = ""
    required: bool = False
    # Kept for non-choice types too, so switching back to a choice type restores them.
    options: list[str] | None = None

    @property
    def visible_options(self) -> list[str]:
        if not uses_options(self.type):
            return []
        return list(self.options or [])


class Form(BaseModel):
    id: str | None = None
    title: str = ""
    description: str = ""
    questions: list[Question] = Field(default_factory=list)
    open_at: datetime | None = None
    close_at: datetime | None = None
    always_open: bool = False
    version: int = 0

    @field_validator("open_at", "close_at")
    @classmethod
    def _assume_utc(cls, value: datetime | None) -> datetime | None:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    def get_question(self, question_id: str) -> Question | None:
        for question in self.questions:
            if question.id == question_id:
                return question
        return None

    @property
    def question_ids(self) -> list[str]:
        return [q.id for q in self.questions]


class SaveFormResponse(BaseModel):
    id: str
    version: int
