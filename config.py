import os
import secrets
import yaml
import keyring

from settings_schema import SettingsSchema, validate_settings

APP_VERSION = "1.0.0"


class YamlConfig:
    """Load and save settings to a YAML file with optional encryption."""

    SENSITIVE_KEYS = {
        "auth_secret_key",
    }

    def __init__(self, path: str = "settings.yaml") -> None:
        self.path = path
        self.encrypt = os.environ.get("ENCRYPT_SETTINGS") == "1"
        self.service = "fitbase"

    def load(self) -> dict:
        if not os.path.exists(self.path):
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if self.encrypt:
            for key in list(data.keys()):
                if key in self.SENSITIVE_KEYS:
                    secret = keyring.get_password(self.service, key)
                    if secret is not None:
                        data[key] = secret
                    else:
                        data.pop(key, None)
        return data

    def save(self, data: dict) -> None:
        out = dict(data)
        if self.encrypt:
            for key in self.SENSITIVE_KEYS:
                if key in out:
                    keyring.set_password(self.service, key, str(out[key]))
                    out[key] = True
        with open(self.path, "w", encoding="utf-8") as f:
            yaml.safe_dump(out, f)


class AppConfig:
    """Application settings backed by ``settings.yaml``.

    Values missing from the file are filled with schema defaults and written
    back. A signing secret is generated the first time one is needed.
    Keyword ``overrides`` apply to this process only and are not persisted.
    """

    def __init__(self, path: str = "settings.yaml", **overrides) -> None:
        self._yaml = YamlConfig(path)
        stored = validate_settings(self._yaml.load())
        if not stored.auth_secret_key:
            stored.auth_secret_key = secrets.token_urlsafe(32)
        self._yaml.save(stored.model_dump())
        merged = stored.model_dump()
        merged.update({k: v for k, v in overrides.items() if v is not None})
        self.settings: SettingsSchema = validate_settings(merged)

    def __getattr__(self, name: str):
        if name == "settings":
            raise AttributeError(name)
        return getattr(self.settings, name)

    def as_dict(self) -> dict:
        data = self.settings.model_dump()
        data.pop("auth_secret_key", None)
        return data
