from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    host: str = "127.0.0.1"
    port: int = 9000
    log_level: str = "INFO"
    store_backend: Literal["json", "rest"] = "json"
    store_file: Path = Path("formengine.json")
    rest_url: str = ""
    rest_api_key: str = ""
    default_question_type: str = "single_choice"
    default_question_label: str = "New Question"
    default_option_label: str = "Option"
    question_id_prefix: str = "q"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "env_prefix": "FORMENGINE_"}


@lru_cache
def get_settings() -> Settings:
    return Settings()
