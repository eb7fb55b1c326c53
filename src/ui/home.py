"""Landing page with the live registration counter."""
import logging
import threading

import streamlit as st

from src.services.registration_service import get_registration_count, subscribe_to_registrations
from src.services.store import get_store
from src.ui.html_utils import html_block, stat_card

logger = logging.getLogger(__name__)

FEATURES = [
    ("👥", "كوّن فريقك", "سجّل بمفردك وهنقسمك في فريق متوازن، أو سجّل فريقك كامل مرة واحدة."),
    ("🚀", "ابنِ مشروعك", "اشتغل مع فريقك على فكرة حقيقية في البرمجة أو التسويق."),
    ("💰", "دعم المشاريع", "لو عندك مشروع قائم، قدّم على برنامج دعم المشاريع."),
]

# Shared by all browser sessions; bumped by the store's change listener
_counter_state = {"version": 0, "seen": -1, "count": 0, "subscribed": False}
_counter_lock = threading.Lock()


def _on_registrations_changed() -> None:
    with _counter_lock:
        _counter_state["version"] += 1


def _current_count() -> int:
    """Registration count, re-read only after a change notification."""
    with _counter_lock:
        if not _counter_state["subscribed"]:
            subscribe_to_registrations(get_store(), _on_registrations_changed)
            _counter_state["subscribed"] = True

        if _counter_state["seen"] != _counter_state["version"]:
            _counter_state["count"] = get_registration_count(get_store())
            _counter_state["seen"] = _counter_state["version"]
        return _counter_state["count"]


@st.fragment(run_every=5)
def _render_counter():
    st.markdown(stat_card("طالب مسجل", _current_count()), unsafe_allow_html=True)


def render_home():
    """Render the landing page."""
    st.markdown(
        html_block(
            """
            <div class="hero" dir="rtl">
                <h1>TeamUp 🚀</h1>
                <p>مسابقة الطلاب لتكوين الفرق وبناء المشاريع</p>
            </div>
            """
        ),
        unsafe_allow_html=True,
    )

    _render_counter()

    cols = st.columns(len(FEATURES))
    for col, (icon, title, body) in zip(cols, FEATURES):
        with col:
            st.markdown(f"### {icon} {title}")
            st.write(body)

    col1, col2 = st.columns(2)
    with col1:
        if st.button("📝 سجّل الآن", type="primary", width='stretch', key="home_join"):
            st.session_state.current_page = "join"
            st.rerun()
    with col2:
        if st.button("💰 قدّم على دعم المشاريع", width='stretch', key="home_support"):
            st.session_state.current_page = "project_support"
            st.rerun()
