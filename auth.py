from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

import streamlit as st
from st_supabase_connection import SupabaseConnection

logger = logging.getLogger("seeya.auth")

SESSION_KEY = "auth_session"


class AuthError(RuntimeError):
    """Sign-in failed or returned no session."""


def get_supabase(conn_name: str = "supabase") -> SupabaseConnection:
    return st.connection(name=conn_name, type=SupabaseConnection, ttl=None)


def _field(obj: Any, name: str) -> Any:
    """Read `name` from a supabase-py model or a plain dict response."""
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def _as_dict(obj: Any) -> dict:
    if isinstance(obj, dict):
        return obj
    dump = getattr(obj, "model_dump", None) or getattr(obj, "dict", None)
    return dump() if dump else {}


@dataclass(frozen=True)
class AuthUser:
    id: str
    email: Optional[str] = None


def current_user(supabase: SupabaseConnection) -> Optional[AuthUser]:
    """The signed-in user for this browser session, or None."""
    sess = st.session_state.get(SESSION_KEY)
    if not sess:
        return None

    try:
        supabase.auth.set_session(sess["access_token"], sess["refresh_token"])
        res = supabase.auth.get_user()
    except Exception as exc:
        # Expired or revoked tokens: drop the session and ask to sign in again.
        logger.warning("Could not restore auth session: %s", exc)
        st.session_state.pop(SESSION_KEY, None)
        return None

    user = _field(res, "user") or res
    user_id = _field(user, "id")
    if not user_id:
        return None
    return AuthUser(id=str(user_id), email=_field(user, "email"))


def sign_in_email_password(supabase: SupabaseConnection, email: str, password: str) -> AuthUser:
    res = supabase.auth.sign_in_with_password({"email": email, "password": password})

    session = _as_dict(_field(res, "session"))
    if not session.get("access_token"):
        raise AuthError("No session returned from sign-in.")

    st.session_state[SESSION_KEY] = {
        "access_token": session["access_token"],
        "refresh_token": session.get("refresh_token"),
    }
    user = _field(res, "user")
    logger.info("User %s signed in", _field(user, "id"))
    return AuthUser(id=str(_field(user, "id")), email=_field(user, "email"))


def sign_out(supabase: SupabaseConnection) -> None:
    try:
        supabase.auth.sign_out()
    except Exception as exc:
        logger.warning("Remote sign-out failed, clearing local session anyway: %s", exc)
    st.session_state.pop(SESSION_KEY, None)
