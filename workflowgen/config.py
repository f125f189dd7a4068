from functools import lru_cache
from typing import List
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from workflowgen.model.constants import TEMPLATE_EXTENSIONS


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="WORKFLOWGEN_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    app_name: str = "Workflow Snippet Generator"

    template_folders: List[str] = Field(default_factory=lambda: ["snippets"])
    generation_folder: str = "output"
    template_extensions: List[str] = Field(default_factory=lambda: list(TEMPLATE_EXTENSIONS))

    max_concurrent: int = Field(default=1, ge=1)
    bind_branch_actions: bool = False

    log_level: str = "WARNING"
    json_indent: int = Field(default=2, ge=0)


@lru_cache()
def get_settings() -> Settings:
    return Settings()
