# ABOUTME: User authentication component using Supabase Auth email and password
# ABOUTME: Provides sign-in/sign-up UI, session refresh and logout for the Streamlit app

import logging
from typing import Any, Dict, Optional

import streamlit as st
from supabase import create_client

from config import SUPABASE_ANON_KEY, SUPABASE_URL

logger = logging.getLogger(__name__)


@st.cache_resource
def init_supabase_client():
    """Initialize Supabase client for frontend authentication."""
    if not SUPABASE_URL or not SUPABASE_ANON_KEY:
        st.error("Supabase credentials not configured in environment")
        st.stop()
    return create_client(SUPABASE_URL, SUPABASE_ANON_KEY)


def _store_session(auth_response) -> bool:
    session = getattr(auth_response, "session", None)
    user = getattr(auth_response, "user", None) or getattr(session, "user", None)
    if not session or not user:
        return False

    st.session_state["user"] = {"id": user.id, "email": user.email}
    st.session_state["supabase_session"] = {
        "access_token": session.access_token,
        "refresh_token": session.refresh_token,
        "expires_at": getattr(session, "expires_at", None),
    }
    logger.info(f"Signed in {user.email}")
    return True


def login_form():
    """Display the sign-in / sign-up forms."""
    st.markdown("### Sign in to MarketingGuide AI")
    sign_in_tab, sign_up_tab = st.tabs(["Sign in", "Create account"])

    with sign_in_tab:
        with st.form("sign_in"):
            email = st.text_input("Email")
            password = st.text_input("Password", type="password")
            submitted = st.form_submit_button("Sign in", type="primary", use_container_width=True)
        if submitted:
            signed_in = False
            try:
                response = init_supabase_client().auth.sign_in_with_password({"email": email, "password": password})
                signed_in = _store_session(response)
                if not signed_in:
                    st.error("Sign in failed")
            except Exception as e:
                logger.error(f"Sign in error: {e}")
                st.error(f"Authentication failed: {str(e)}")
            if signed_in:
                st.rerun()

    with sign_up_tab:
        with st.form("sign_up"):
            email = st.text_input("Email", key="sign_up_email")
            password = st.text_input("Password", type="password", key="sign_up_password")
            submitted = st.form_submit_button("Create account", use_container_width=True)
        if submitted:
            signed_in = False
            try:
                response = init_supabase_client().auth.sign_up({"email": email, "password": password})
                signed_in = _store_session(response)
                if not signed_in:
                    st.success("Check your inbox to confirm your email, then sign in.")
            except Exception as e:
                logger.error(f"Sign up error: {e}")
                st.error(f"Sign up failed: {str(e)}")
            if signed_in:
                st.rerun()


def refresh_session() -> Optional[Dict[str, Any]]:
    """Refresh the stored Supabase session; clears it when the refresh token is rejected."""
    session = st.session_state.get("supabase_session")
    if not session or not session.get("refresh_token"):
        return None
    try:
        response = init_supabase_client().auth.refresh_session(session["refresh_token"])
        if _store_session(response):
            logger.info("Successfully refreshed Supabase session")
            return st.session_state["supabase_session"]
        logger.warning("Failed to refresh Supabase session - no new session returned")
    except Exception as e:
        logger.error(f"Session refresh failed: {e}")
    st.session_state["supabase_session"] = None
    st.session_state.pop("user", None)
    return None


def logout():
    """Sign out the current user."""
    try:
        init_supabase_client().auth.sign_out()
    except Exception as e:
        logger.error(f"Logout error: {e}")
    for key in list(st.session_state.keys()):
        st.session_state.pop(key, None)
    st.rerun()


def get_current_user() -> Optional[Dict[str, Any]]:
    """Get the currently authenticated user."""
    return st.session_state.get("user")


def require_auth() -> Dict[str, Any]:
    """Show the login UI and stop the script until a user is signed in."""
    user = get_current_user()
    if not user:
        login_form()
        st.stop()
    return user


def show_user_profile():
    """Display user profile in sidebar."""
    user = get_current_user()
    if not user:
        return
    with st.sidebar:
        st.markdown("---")
        st.caption(user["email"])
        if st.button("Sign out", type="secondary"):
            logout()
