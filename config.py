from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Mapping, Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_TRUE = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    log_level: str = "INFO"
    show_dev_details: bool = False
    site_url: str = "http://localhost:8501"
    supabase_conn_name: str = "supabase"  # must match [connections.<name>] in secrets.toml
    calendar_months: int = 3


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUE


def load_settings(secrets: Optional[Mapping[str, Any]] = None, environ: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Streamlit secrets win over environment variables; anything missing
    from both keeps its default.
    """
    secrets = secrets or {}
    environ = os.environ if environ is None else environ
    defaults = Settings()

    def get(name: str, default: Any) -> Any:
        if name in secrets:
            return secrets[name]
        return environ.get(name, default)

    months = int(get("DEFAULT_CALENDAR_MONTHS", defaults.calendar_months))
    if months not in (1, 3, 6, 12):
        raise ValueError(f"DEFAULT_CALENDAR_MONTHS must be 1, 3, 6 or 12, got {months}.")

    return Settings(
        log_level=str(get("LOG_LEVEL", defaults.log_level)).upper(),
        show_dev_details=_as_bool(get("SHOW_DEV_DETAILS", defaults.show_dev_details)),
        site_url=str(get("SITE_URL", defaults.site_url)),
        supabase_conn_name=str(get("SUPABASE_CONN_NAME", defaults.supabase_conn_name)),
        calendar_months=months,
    )


def streamlit_secrets() -> Mapping[str, Any]:
    """st.secrets as a plain dict; empty when no secrets.toml exists."""
    import streamlit as st

    try:
        return dict(st.secrets)
    except FileNotFoundError:
        return {}


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Attach one console handler to the `seeya` logger (idempotent across reruns)."""
    logger = logging.getLogger("seeya")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    if not any(getattr(h, "_seeya", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._seeya = True
        logger.addHandler(handler)

    return logger
