import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


def _parse_bool(value: Optional[str], default: bool) -> bool:
    if value is None or value == "":
        return default
    v = value.strip().lower()
    if v in {"0", "false", "no"}:
        return False
    return True


@dataclass
class Settings:
    api_url: str
    log_level: str

    http_timeout: float

    data_dir: str
    token_file: str
    persist_token: bool

    enable_prometheus_exporter: bool

    @classmethod
    def from_env(cls) -> "Settings":
        api_url = os.getenv("PREDICTOR_API_URL")
        if not api_url:
            raise ValueError(
                "PREDICTOR_API_URL non impostata. Aggiungi a .env: PREDICTOR_API_URL=http://localhost:4000"
            )

        def _float(name: str, default: float) -> float:
            raw = os.getenv(name)
            if not raw:
                return default
            try:
                return float(raw)
            except ValueError as e:
                raise ValueError(f"Variabile {name} deve essere un numero (valore: {raw!r})") from e

        log_level = os.getenv("PREDICTOR_LOG_LEVEL", "INFO").upper()

        http_timeout = _float("PREDICTOR_HTTP_TIMEOUT", 10.0)
        if http_timeout <= 0:
            http_timeout = 10.0

        data_dir = os.getenv("PREDICTOR_DATA_DIR", "data")
        token_file = os.getenv("PREDICTOR_TOKEN_FILE", "session.json")
        persist_token = _parse_bool(os.getenv("PREDICTOR_PERSIST_TOKEN"), True)

        enable_prometheus_exporter = _parse_bool(os.getenv("ENABLE_PROMETHEUS_EXPORTER"), False)

        return cls(
            api_url=api_url.rstrip("/"),
            log_level=log_level,
            http_timeout=http_timeout,
            data_dir=data_dir,
            token_file=token_file,
            persist_token=persist_token,
            enable_prometheus_exporter=enable_prometheus_exporter,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()


def _reset_settings_cache_for_tests() -> None:
    get_settings.cache_clear()


__all__ = ["Settings", "get_settings", "_reset_settings_cache_for_tests"]
