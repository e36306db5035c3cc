"""Settings loader with environment variable and Docker secrets integration."""
from __future__ import annotations
import os
from dataclasses import dataclass
from pathlib import Path

SECRETS_DIR = "/run/secrets"
TOKEN_SECRET = "security_api_token"
TOKEN_ENV_VAR = "SECURITY_API_TOKEN"


def _resolve_api_token() -> tuple[str, str]:
    """Return ``(token, source)`` for the backend bearer token.

    A mounted ``/run/secrets/security_api_token`` wins over the
    ``SECURITY_API_TOKEN`` variable. An unreadable or empty secret file
    falls through to the environment. ``source`` is ``"none"`` when no
    token is configured.
    """
    secret_file = Path(SECRETS_DIR) / TOKEN_SECRET
    if secret_file.is_file():
        try:
            token = secret_file.read_text().strip()
        except OSError as e:
            print(f"[settings] ✗ Cannot read {secret_file}: {e}")
        else:
            if token:
                return token, "secret"

    token = os.getenv(TOKEN_ENV_VAR, "").strip()
    if token:
        return token, "env"
    return "", "none"


def _env_int(var_name: str, default: int) -> int:
    raw = os.environ.get(var_name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        raise RuntimeError(f"Environment variable {var_name} must be an integer, got {raw!r}.")
    if value <= 0:
        raise RuntimeError(f"Environment variable {var_name} must be positive, got {value}.")
    return value


def _env_bool(var_name: str, default: bool) -> bool:
    return os.environ.get(var_name, str(default)).strip().lower() in ("1", "true", "yes")


@dataclass
class ClientConfig:
    """Security client configuration container."""
    api_url: str = "http://localhost:7512"
    api_token: str = ""
    query_path: str = "/api/_query"
    request_timeout: int = 5
    max_workers: int = 4
    promise_support: bool = True


def load_settings() -> ClientConfig:
    """Load client settings from environment and /run/secrets."""
    api_url = os.environ.get("SECURITY_API_URL", "http://localhost:7512").rstrip("/")
    api_token, token_source = _resolve_api_token()
    query_path = os.environ.get("SECURITY_QUERY_PATH", "/api/_query")

    request_timeout = _env_int("SECURITY_REQUEST_TIMEOUT", 5)
    max_workers = _env_int("SECURITY_MAX_WORKERS", 4)
    promise_support = _env_bool("SECURITY_PROMISE_SUPPORT", True)

    auth_label = f"token ({token_source})" if api_token else "anonymous"
    print(f"[settings] api_url={api_url}; auth={auth_label}; timeout={request_timeout}s")

    return ClientConfig(
        api_url=api_url,
        api_token=api_token,
        query_path=query_path,
        request_timeout=request_timeout,
        max_workers=max_workers,
        promise_support=promise_support,
    )
