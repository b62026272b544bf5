import json
import logging
import uuid
from pathlib import Path
from typing import Protocol

import requests

from formengine.config import get_settings
from formengine.exceptions import AdapterError, ConflictError, NotFound
from formengine.http_client import get_session
from formengine.models.answers import AnswerSet
from formengine.models.enrollment import Enrollment, ParticipantRole
from formengine.models.forms import Form

logger = logging.getLogger(__name__)


class PersistenceAdapter(Protocol):
    def get_form(self, form_id: str) -> Form: ...

    def upsert_form(self, form: Form) -> str: ...

    def get_answer_set(self, form_id: str, owner_id: str) -> AnswerSet | None: ...

    def upsert_answer_set(self, answer_set: AnswerSet) -> str: ...

    def count_answer_sets(self, form_id: str) -> int: ...


class EnrollmentProvider(Protocol):
    def get_enrollment(self, form_id: str, respondent_id: str) -> Enrollment | None: ...

    def get_role(self, form_id: str, respondent_id: str) -> ParticipantRole: ...


def _new_record_id() -> str:
    return uuid.uuid4().hex


class JsonFileStore:
    """Reads/writes forms, answer sets and enrollments in a single local JSON file.

    Forms use optimistic versioning: an update is accepted only when the
    incoming version matches the stored one.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def _read_all(self) -> dict:
        data = {"forms": {}, "answer_sets": {}, "enrollments": []}
        if not self.path.exists():
            return data
        try:
            data.update(json.loads(self.path.read_text()))
        except (OSError, ValueError) as e:
            logger.error("Failed to read store %s: %s", self.path, e)
            raise AdapterError(f"Failed to read store {self.path}: {e}") from e
        return data

    def _write_all(self, data: dict) -> None:
        try:
            self.path.write_text(json.dumps(data, indent=2))
        except OSError as e:
            logger.error("Failed to write store %s: %s", self.path, e)
            raise AdapterError(f"Failed to write store {self.path}: {e}") from e

    # --- forms ---

    def get_form(self, form_id: str) -> Form:
        record = self._read_all()["forms"].get(form_id)
        if record is None:
            raise NotFound(f"Form {form_id} not found")
        return Form.model_validate(record)

    def upsert_form(self, form: Form) -> str:
        data = self._read_all()
        form_id = form.id or _new_record_id()
        stored = data["forms"].get(form_id)
        stored_version = stored.get("version", 0) if stored else 0
        if stored_version != form.version:
            raise ConflictError(
                f"Form {form_id} was modified elsewhere (stored version {stored_version}, "
                f"draft version {form.version}). Reload before saving."
            )
        record = form.model_copy(update={"id": form_id, "version": form.version + 1})
        data["forms"][form_id] = record.model_dump(mode="json")
        self._write_all(data)
        return form_id

    # --- answer sets ---

    def get_answer_set(self, form_id: str, owner_id: str) -> AnswerSet | None:
        for record in self._read_all()["answer_sets"].values():
            if record["form_id"] == form_id and record["owner_id"] == owner_id:
                return AnswerSet.model_validate(record)
        return None

    def upsert_answer_set(self, answer_set: AnswerSet) -> str:
        data = self._read_all()
        if answer_set.id is None:
            for record in data["answer_sets"].values():
                if record["form_id"] == answer_set.form_id and record["owner_id"] == answer_set.owner_id:
                    raise ConflictError(
                        f"An answer set already exists for form {answer_set.form_id} and owner {answer_set.owner_id}"
                    )
        elif answer_set.id not in data["answer_sets"]:
            raise NotFound(f"Answer set {answer_set.id} not found")
        answer_set_id = answer_set.id or _new_record_id()
        record = answer_set.model_copy(update={"id": answer_set_id})
        data["answer_sets"][answer_set_id] = record.model_dump(mode="json")
        self._write_all(data)
        return answer_set_id

    def count_answer_sets(self, form_id: str) -> int:
        return sum(1 for r in self._read_all()["answer_sets"].values() if r["form_id"] == form_id)

    # --- enrollments ---

    def get_enrollment(self, form_id: str, respondent_id: str) -> Enrollment | None:
        for record in self._read_all()["enrollments"]:
            if record["form_id"] == form_id and record["respondent_id"] == respondent_id:
                return Enrollment.model_validate(record)
        return None

    def get_role(self, form_id: str, respondent_id: str) -> ParticipantRole:
        enrollment = self.get_enrollment(form_id, respondent_id)
        return enrollment.role if enrollment else ParticipantRole.INDIVIDUAL

    def save_enrollment(self, enrollment: Enrollment) -> None:
        data = self._read_all()
        data["enrollments"] = [
            r for r in data["enrollments"]
            if not (r["form_id"] == enrollment.form_id and r["respondent_id"] == enrollment.respondent_id)
        ]
        data["enrollments"].append(enrollment.model_dump(mode="json"))
        self._write_all(data)


class RestStore:
    """PostgREST-style hosted store (tables ``forms``, ``answer_sets``, ``enrollments``)."""

    def __init__(self, base_url: str, api_key: str, session: requests.Session | None = None):
        if not base_url:
            raise AdapterError("REST store URL is not configured. Set FORMENGINE_REST_URL.")
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.session = session or get_session()

    def _headers(self) -> dict:
        return {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "Prefer": "return=representation",
        }

    def _request(self, method: str, table: str, params: dict | None = None, body: dict | None = None) -> list[dict]:
        url = f"{self.base_url}/rest/v1/{table}"
        try:
            resp = self.session.request(method, url, headers=self._headers(), params=params, json=body, timeout=30)
        except requests.RequestException as e:
            logger.error("%s %s failed: %s", method, table, e)
            raise AdapterError(f"Store request failed: {e}") from e
        return self._handle_response(resp, method, table)

    @staticmethod
    def _handle_response(resp: requests.Response, method: str, table: str) -> list[dict]:
        if resp.status_code == 409:
            raise ConflictError(f"Store rejected {method} on {table}: {resp.text}")
        if resp.status_code >= 400:
            logger.error("%s %s returned %s: %s", method, table, resp.status_code, resp.text)
            raise AdapterError(f"Store error ({resp.status_code}) on {table}: {resp.text}")
        if not resp.content:
            return []
        return resp.json()

    # --- forms ---

    def get_form(self, form_id: str) -> Form:
        rows = self._request("GET", "forms", params={"id": f"eq.{form_id}", "select": "*"})
        if not rows:
            raise NotFound(f"Form {form_id} not found")
        return Form.model_validate(rows[0])

    def upsert_form(self, form: Form) -> str:
        body = form.model_dump(mode="json", exclude={"id"})
        body["version"] = form.version + 1
        if form.id is not None:
            rows = self._request(
                "PATCH", "forms",
                params={"id": f"eq.{form.id}", "version": f"eq.{form.version}"},
                body=body,
            )
            if rows:
                return rows[0]["id"]
            if form.version != 0:
                raise ConflictError(f"Form {form.id} was modified elsewhere. Reload before saving.")
            body["id"] = form.id
        rows = self._request("POST", "forms", body=body)
        return rows[0]["id"]

    # --- answer sets ---

    def get_answer_set(self, form_id: str, owner_id: str) -> AnswerSet | None:
        rows = self._request(
            "GET", "answer_sets",
            params={"form_id": f"eq.{form_id}", "owner_id": f"eq.{owner_id}", "limit": "1"},
        )
        return AnswerSet.model_validate(rows[0]) if rows else None

    def upsert_answer_set(self, answer_set: AnswerSet) -> str:
        body = answer_set.model_dump(mode="json", exclude={"id"})
        if answer_set.id is None:
            rows = self._request("POST", "answer_sets", body=body)
        else:
            rows = self._request("PATCH", "answer_sets", params={"id": f"eq.{answer_set.id}"}, body=body)
            if not rows:
                raise NotFound(f"Answer set {answer_set.id} not found")
        return rows[0]["id"]

    def count_answer_sets(self, form_id: str) -> int:
        rows = self._request("GET", "answer_sets", params={"form_id": f"eq.{form_id}", "select": "id"})
        return len(rows)

    # --- enrollments ---

    def get_enrollment(self, form_id: str, respondent_id: str) -> Enrollment | None:
        rows = self._request(
            "GET", "enrollments",
            params={"form_id": f"eq.{form_id}", "respondent_id": f"eq.{respondent_id}", "limit": "1"},
        )
        return Enrollment.model_validate(rows[0]) if rows else None

    def get_role(self, form_id: str, respondent_id: str) -> ParticipantRole:
        enrollment = self.get_enrollment(form_id, respondent_id)
        return enrollment.role if enrollment else ParticipantRole.INDIVIDUAL


def get_store() -> JsonFileStore | RestStore:
    settings = get_settings()
    if settings.store_backend == "rest":
        return RestStore(settings.rest_url, settings.rest_api_key)
    return JsonFileStore(settings.store_file)
