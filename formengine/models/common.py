from pydantic import BaseModel


class ErrorResponse(BaseModel):
    error_code: str
    message: str
    violations: list[str] | None = None
    state: str | None = None
