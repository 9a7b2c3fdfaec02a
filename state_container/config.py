"""Package configuration loaded from environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings

from state_container.domain.enums import DraftStrategy


class Settings(BaseSettings):
    log_level: str = "INFO"

    # Working-copy strategy used by build() when none is given explicitly
    default_strategy: DraftStrategy = DraftStrategy.DRAFT

    # Check dispatch payloads against the handler's payload annotation
    validate_payloads: bool = True

    model_config = {"env_prefix": "STATE_CONTAINER_"}


settings = Settings()
