"""Admin dashboard: registrants, group formation and bulk actions."""
import logging
import traceback

import streamlit as st

from src.models.group import GroupFormationResult
from src.services.admin_service import is_admin_authenticated, login_admin, logout_admin
from src.services.group_service import (
    DEFAULT_GROUP_SIZE,
    generate_groups,
    get_groups,
    reset_groups,
    reshuffle_groups,
)
from src.services.registration_service import (
    add_random_student,
    delete_all_students,
    delete_student,
    get_registrations,
)
from src.services.store import get_store
from src.ui.html_utils import html_block, stat_card
from src.utils.date_utils import format_created_at
from src.utils.env import get_int_setting
from src.utils.exceptions import TeamUpError

logger = logging.getLogger(__name__)


def _show_admin_exception(error: Exception, context: str) -> None:
    """Display error details in UI and log full traceback."""
    logger.exception("Admin dashboard error during %s", context)

    st.error(f"❌ فشل {context}")
    with st.expander("🔍 تفاصيل الخطأ"):
        st.code("".join(traceback.format_exception(type(error), error, error.__traceback__)))


def _run_action(context: str, action):
    """Run an admin action, turning failures into messages."""
    try:
        return action()
    except TeamUpError as error:
        st.error(f"❌ {error.message}")
    except Exception as error:
        _show_admin_exception(error, context)
    return None


def _report_formation(result: GroupFormationResult) -> None:
    if result is None:
        return
    st.success(f"🎉 تم تكوين {len(result.created)} مجموعة بنجاح")
    if result.failed:
        st.warning(f"⚠️ تعذّر حفظ {len(result.failed)} مجموعة، يمكنك إعادة المحاولة")
        for attempt in result.failed:
            st.caption(f"{attempt.name}: {attempt.error}")


def render_login_page():
    """PIN login form."""
    st.markdown(
        html_block(
            """
            <div class="login-title" dir="rtl">🔐 لوحة التحكم</div>
            <div class="login-description" dir="rtl">أدخل الرقم السري للمتابعة</div>
            """
        ),
        unsafe_allow_html=True,
    )

    with st.form("admin_login_form", clear_on_submit=False):
        pin = st.text_input("الرقم السري", type="password")
        col1, col2 = st.columns(2)
        with col1:
            submit = st.form_submit_button("دخول", width='stretch', type="primary")
        with col2:
            cancel = st.form_submit_button("رجوع", width='stretch')

    if submit:
        if not pin:
            st.error("❌ من فضلك أدخل الرقم السري")
        else:
            success, message = login_admin(pin)
            if success:
                st.success(f"✅ {message}")
                st.rerun()
            else:
                st.error(f"❌ {message}")

    if cancel:
        st.session_state.current_page = "home"
        st.rerun()


def render_group_actions(store):
    """Group formation controls."""
    st.markdown("### 🧩 تقسيم المجموعات")

    group_size = st.number_input(
        "عدد الأعضاء في كل مجموعة",
        min_value=2,
        max_value=10,
        value=min(max(get_int_setting("TEAMUP_GROUP_SIZE", DEFAULT_GROUP_SIZE), 2), 10),
        key="admin_group_size",
    )
    confirm = st.checkbox("⚠️ أؤكد تنفيذ العملية (إعادة التقسيم والحذف لا يمكن التراجع عنهما)", key="admin_confirm")

    col1, col2, col3 = st.columns(3)
    with col1:
        if st.button("🎯 تقسيم المجموعات", type="primary", width='stretch', disabled=not confirm):
            with st.spinner("جاري التقسيم..."):
                _report_formation(_run_action("تقسيم المجموعات", lambda: generate_groups(store, int(group_size))))
    with col2:
        if st.button("🔀 إعادة التقسيم", width='stretch', disabled=not confirm):
            with st.spinner("جاري إعادة التقسيم..."):
                _report_formation(_run_action("إعادة التقسيم", lambda: reshuffle_groups(store, int(group_size))))
    with col3:
        if st.button("🗑️ حذف جميع المجموعات", width='stretch', disabled=not confirm):
            if _run_action("حذف المجموعات", lambda: reset_groups(store) or True):
                st.success("تم حذف جميع المجموعات")


def render_registrants_table(store):
    """Registrants list with per-row delete."""
    registrations = _run_action("تحميل البيانات", lambda: get_registrations(store)) or []
    group_names = {g.id: g.name for g in (_run_action("تحميل المجموعات", lambda: get_groups(store)) or [])}

    real_count = sum(1 for r in registrations if not r.is_dummy)
    assigned_count = sum(1 for r in registrations if r.assigned)

    cols = st.columns(4)
    for col, (label, value, accent) in zip(cols, [
        ("إجمالي المسجلين", len(registrations), "#667eea"),
        ("طلاب حقيقيين", real_count, "#10b981"),
        ("تم تقسيمهم", assigned_count, "#f59e0b"),
        ("مجموعات", len(group_names), "#ec4899"),
    ]):
        with col:
            st.markdown(stat_card(label, value, accent), unsafe_allow_html=True)

    st.markdown("### 👥 المسجلين")

    col1, col2 = st.columns(2)
    with col1:
        if st.button("🤖 إضافة طالب تجريبي", width='stretch'):
            student = _run_action("إضافة طالب تجريبي", lambda: add_random_student(store))
            if student:
                st.success(f"تمت إضافة {student.name}")
                st.rerun()
    with col2:
        if st.button("🧨 حذف جميع الطلاب", width='stretch', disabled=not st.session_state.get("admin_confirm")):
            deleted = _run_action("حذف جميع الطلاب", lambda: delete_all_students(store))
            if deleted is not None:
                st.success(f"تم حذف {deleted} طالب")
                st.rerun()

    if not registrations:
        st.info("لا يوجد مسجلين بعد")
        return

    for registrant in registrations:
        col1, col2, col3, col4, col5 = st.columns([3, 2, 2, 3, 1])
        with col1:
            marker = "🤖 " if registrant.is_dummy else ""
            st.write(f"{marker}**{registrant.name}**")
            st.caption(registrant.college or "—")
        with col2:
            st.write(registrant.phone)
        with col3:
            st.write(registrant.interest_label())
        with col4:
            st.write(group_names.get(registrant.group_id, "غير مقسم"))
            st.caption(format_created_at(registrant.created_at))
        with col5:
            if st.button("🗑️", key=f"delete_student_{registrant.id}"):
                if _run_action("حذف الطالب", lambda: delete_student(store, registrant.id) or True):
                    st.rerun()


def render_admin_panel():
    """Render the admin dashboard, or the login form when not authenticated."""
    if not is_admin_authenticated():
        render_login_page()
        return

    store = get_store()

    header_col, logout_col = st.columns([4, 1])
    with header_col:
        st.markdown("## 🛠️ لوحة التحكم")
    with logout_col:
        if st.button("🚪 خروج", width='stretch'):
            logout_admin()
            st.session_state.current_page = "home"
            st.rerun()

    nav1, nav2 = st.columns(2)
    with nav1:
        if st.button("📋 عرض المجموعات", width='stretch'):
            st.session_state.current_page = "groups"
            st.rerun()
    with nav2:
        if st.button("💰 طلبات دعم المشاريع", width='stretch'):
            st.session_state.current_page = "project_support_admin"
            st.rerun()

    render_group_actions(store)
    st.divider()
    render_registrants_table(store)
