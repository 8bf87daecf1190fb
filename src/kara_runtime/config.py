"""Runtime configuration for the Kara execution core."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-driven runtime settings."""

    model_config = SettingsConfigDict(env_prefix="KARA_", env_file=".env", extra="ignore")

    app_name: str = "kara-runtime"
    log_level: str = "INFO"
    max_steps: int = Field(
        default=10_000,
        gt=0,
        description="Loop iterations a text program may run before it is stopped.",
    )
    fsm_max_steps: int = Field(default=10_000, gt=0, description="Transitions a state machine run may take.")
    push_mushrooms: bool = False
    max_file_bytes: int = Field(default=1_048_576, gt=0, description="Largest world or state machine file accepted.")
    default_dialect: str = "JavaKara"


settings = Settings()
