from pydantic import BaseModel, Field, ValidationError, field_validator


class SettingsSchema(BaseModel):
    db_path: str = "fitbase.db"
    auth_secret_key: str = ""
    auth_algorithm: str = "HS256"
    token_expire_minutes: int = Field(default=60 * 24, ge=1)
    reset_token_expire_minutes: int = Field(default=30, ge=1)
    bcrypt_rounds: int = Field(default=12, ge=4, le=31)
    custom_plan_limit: int = Field(default=5, ge=0)
    records_scan_limit: int = Field(default=50, ge=1)
    history_max_limit: int = Field(default=100, ge=1)
    enforce_set_sequence: bool = False
    rate_limit: int | None = Field(default=None, ge=1)
    rate_window: int = Field(default=60, ge=1)
    log_level: str = "INFO"
    log_file: str | None = None

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {value}")
        return level


def validate_settings(data: dict) -> SettingsSchema:
    try:
        return SettingsSchema(**data)
    except ValidationError as e:
        raise ValueError(str(e))
