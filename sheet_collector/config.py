import os
import json
import base64
import binascii
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

BASE_DIR = Path(__file__).resolve().parent

DEFAULT_CREDENTIALS_FILE = "service-account.json"

_TRUTHY = {"1", "true", "yes", "on"}


class ConfigError(ValueError):
    """Raised when the environment does not describe a usable configuration."""


class CredentialsError(RuntimeError):
    """Raised when the service account key material cannot be loaded."""


def _json_mapping(name: str, raw: str | None) -> dict[str, str]:
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigError(f"{name} is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"{name} must be a JSON object")
    return {str(k): str(v) for k, v in data.items() if v}


@dataclass(frozen=True, slots=True)
class Settings:
    credentials_file: Path = BASE_DIR.parent / DEFAULT_CREDENTIALS_FILE
    credentials_b64: str | None = None
    base_folder_id: str | None = None
    folder_mapping: dict[str, str] = field(default_factory=dict)
    workbook_mapping: dict[str, str] = field(default_factory=dict)
    allow_caller_folder_id: bool = False
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        env = os.environ if environ is None else environ

        creds_file = Path(env.get("GOOGLE_CREDENTIALS_FILE") or DEFAULT_CREDENTIALS_FILE)
        if not creds_file.is_absolute():
            creds_file = BASE_DIR.parent / creds_file

        return cls(
            credentials_file=creds_file,
            credentials_b64=env.get("GOOGLE_CREDS_B64") or None,
            base_folder_id=env.get("BASE_FOLDER_ID") or None,
            folder_mapping=_json_mapping("FOLDER_MAPPING", env.get("FOLDER_MAPPING")),
            workbook_mapping=_json_mapping("WORKBOOK_MAPPING", env.get("WORKBOOK_MAPPING")),
            allow_caller_folder_id=env.get("ALLOW_CALLER_FOLDER_ID", "").strip().lower() in _TRUTHY,
            log_level=(env.get("LOG_LEVEL") or "INFO").upper(),
        )


def _decode_b64_creds(creds_b64: str) -> dict:
    # Fix padding
    missing_padding = len(creds_b64) % 4
    padded = creds_b64 + "=" * (4 - missing_padding) if missing_padding else creds_b64

    try:
        return json.loads(base64.b64decode(padded).decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError):
        pass

    # maybe it's raw JSON
    try:
        return json.loads(creds_b64)
    except json.JSONDecodeError as e:
        raise CredentialsError(
            "Unable to load Google API credentials: GOOGLE_CREDS_B64 is neither base64 nor JSON"
        ) from e


def load_credentials(settings: Settings) -> dict:
    """Load the service account key material.

    GOOGLE_CREDS_B64 wins when set, otherwise the credentials file is read.
    Any failure raises CredentialsError; callers treat it as fatal at startup.
    """
    if settings.credentials_b64:
        info = _decode_b64_creds(settings.credentials_b64)
    else:
        try:
            info = json.loads(settings.credentials_file.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise CredentialsError(f"Unable to load Google API credentials: {e}") from e

    if not isinstance(info, dict) or not info.get("client_email") or not info.get("private_key"):
        raise CredentialsError(
            "Unable to load Google API credentials: missing client_email or private_key"
        )
    return info
