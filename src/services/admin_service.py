"""Admin service for PIN authentication and session state management."""
import hmac

import streamlit as st
from typing import Tuple

from src.utils.env import get_setting

DEFAULT_ADMIN_PIN = "123456"


def authenticate_admin(pin: str) -> bool:
    """
    Check a PIN against ADMIN_PIN.

    Args:
        pin: PIN typed by the user

    Returns:
        True if the PIN matches, False otherwise

    Behavior:
        - Reads ADMIN_PIN from the environment or .env (default "123456")
        - Empty PINs never match
    """
    if not pin:
        return False

    admin_pin = get_setting("ADMIN_PIN", DEFAULT_ADMIN_PIN)
    return hmac.compare_digest(pin.strip().encode("utf-8"), admin_pin.encode("utf-8"))


def is_admin_authenticated() -> bool:
    """
    Check if admin is authenticated in current session.

    Returns:
        True if st.session_state['admin_authenticated'] is True
    """
    return st.session_state.get("admin_authenticated", False)


def login_admin(pin: str) -> Tuple[bool, str]:
    """
    Log in with the shared admin PIN.

    Returns:
        Tuple of (success: bool, message: str)
        - (True, "تم تسجيل الدخول بنجاح") on success
        - (False, "الرقم السري غير صحيح") on failure
    """
    if authenticate_admin(pin):
        st.session_state["admin_authenticated"] = True
        return True, "تم تسجيل الدخول بنجاح"
    return False, "الرقم السري غير صحيح"


def logout_admin() -> None:
    """Clear the admin flag from session state."""
    if "admin_authenticated" in st.session_state:
        del st.session_state["admin_authenticated"]
