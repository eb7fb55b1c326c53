"""Registration page: individual students and pre-formed groups."""
import logging

import streamlit as st

from src.models.registrant import INTEREST_LABELS
from src.services.rate_limiter import SlidingWindowRateLimiter, rate_limiter_from_env
from src.services.registration_service import register_group, register_student
from src.services.store import get_store
from src.utils.exceptions import TeamUpError

logger = logging.getLogger(__name__)

MAX_TEAMMATES = 5


@st.cache_resource
def get_rate_limiter() -> SlidingWindowRateLimiter:
    """One limiter shared by every browser session of this process."""
    return rate_limiter_from_env()


def _interest_select(key: str) -> str:
    return st.selectbox(
        "مجال الاهتمام",
        options=list(INTEREST_LABELS.keys()),
        format_func=lambda value: INTEREST_LABELS[value],
        key=key,
    )


def render_individual_form():
    """Single-student registration form."""
    with st.form("join_individual_form", clear_on_submit=False):
        name = st.text_input("الاسم بالكامل", max_chars=100)
        college = st.text_input("الكلية (اختياري)")
        phone = st.text_input("رقم الموبايل", placeholder="01XXXXXXXXX")
        interest = _interest_select("join_interest")
        submit = st.form_submit_button("✅ سجّل", type="primary", width='stretch')

    if not submit:
        return

    try:
        registrant = register_student(
            get_store(),
            {"name": name, "college": college, "phone": phone, "interest": interest},
            rate_limiter=get_rate_limiter(),
        )
    except TeamUpError as error:
        st.error(f"❌ {error.message}")
        return
    except Exception:
        logger.exception("Unexpected error during registration")
        st.error("❌ فشل التسجيل. حاول مرة أخرى.")
        return

    st.success(f"🎉 تم التسجيل بنجاح يا {registrant.name}! هنبلغك بفريقك قريب.")
    st.balloons()


def render_group_form():
    """Leader plus teammates registration form."""
    teammate_count = st.number_input(
        "عدد أعضاء الفريق (بدون القائد)",
        min_value=0,
        max_value=MAX_TEAMMATES,
        value=2,
        key="join_teammate_count",
    )

    with st.form("join_group_form", clear_on_submit=False):
        st.markdown("#### 👑 قائد الفريق")
        leader_name = st.text_input("اسم القائد", max_chars=100)
        leader_phone = st.text_input("موبايل القائد", placeholder="01XXXXXXXXX")
        college = st.text_input("الكلية")
        interest = _interest_select("join_group_interest")

        members = []
        for index in range(int(teammate_count)):
            st.markdown(f"#### 👤 العضو {index + 1}")
            col1, col2, col3 = st.columns(3)
            with col1:
                member_name = st.text_input("الاسم", key=f"member_name_{index}")
            with col2:
                member_phone = st.text_input("الموبايل", key=f"member_phone_{index}")
            with col3:
                member_college = st.text_input("الكلية (لو مختلفة)", key=f"member_college_{index}")
            members.append({"name": member_name, "phone": member_phone, "college": member_college})

        submit = st.form_submit_button("✅ سجّل الفريق", type="primary", width='stretch')

    if not submit:
        return

    try:
        result = register_group(get_store(), leader_name, leader_phone, college, interest, members)
    except TeamUpError as error:
        st.error(f"❌ {error.message}")
        return
    except Exception:
        logger.exception("Unexpected error during group registration")
        st.error("❌ فشل تسجيل الفريق. حاول مرة أخرى.")
        return

    st.success(f"🎉 تم تسجيل فريق **{result.group.name}** ({len(result.members)} أعضاء)")
    st.balloons()


def render_join_form():
    st.markdown("## 📝 التسجيل في TeamUp")
    individual_tab, group_tab = st.tabs(["👤 تسجيل فردي", "👥 تسجيل فريق"])
    with individual_tab:
        render_individual_form()
    with group_tab:
        render_group_form()
