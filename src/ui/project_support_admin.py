"""Admin triage of funding applications."""
import logging

import streamlit as st

from src.models.application import APPLICATION_STATUSES, STATUS_LABELS
from src.services.admin_service import is_admin_authenticated
from src.services.export_service import export_applications_rows, export_filename, rows_to_csv_bytes
from src.services.project_support_service import (
    application_stats,
    get_project_application_with_members,
    get_project_applications,
    update_application_status,
)
from src.services.store import get_store
from src.ui.html_utils import stat_card
from src.utils.date_utils import format_created_at, today_str
from src.utils.exceptions import TeamUpError

logger = logging.getLogger(__name__)

STATUS_COLORS = {"pending": "#f59e0b", "accepted": "#10b981", "rejected": "#ef4444"}


def _render_application(store, application):
    with st.expander(f"{application.project_name} — {application.status_label()}"):
        try:
            detail = get_project_application_with_members(store, application.id)
        except TeamUpError as error:
            st.error(f"❌ {error.message}")
            return

        st.write(f"**الفريق:** {detail.team_name or '—'}")
        st.write(f"**الوصف:** {detail.project_description}")
        st.write(f"**المشكلة:** {detail.problem_statement or '—'}")
        st.write(f"**الإنجازات:** {', '.join(detail.traction_summary()) or '—'}")
        for key, value in detail.traction_details.items():
            if value:
                st.caption(f"{key}: {value}")
        if detail.video_pitch:
            st.write(f"🎬 {detail.video_pitch}")
        if detail.demo_link:
            st.write(f"🔗 {detail.demo_link}")
        st.write(f"**الدعم المطلوب:** {detail.support_needs or '—'}")
        st.caption(format_created_at(detail.created_at))

        st.markdown("**أعضاء الفريق**")
        for member in detail.team_members:
            st.write(f"• {member.name} — {member.phone} — {member.email or '—'} — {member.role or '—'}")

        if detail.status == "pending":
            col1, col2 = st.columns(2)
            for col, status, label in [(col1, "accepted", "✅ قبول"), (col2, "rejected", "❌ رفض")]:
                with col:
                    if st.button(label, key=f"status_{status}_{detail.id}", width='stretch'):
                        try:
                            update_application_status(store, detail.id, status)
                        except TeamUpError as error:
                            st.error(f"❌ {error.message}")
                        else:
                            st.success(f"تم تحديث حالة الطلب إلى {STATUS_LABELS[status]}")
                            st.rerun()


def render_project_support_admin():
    if not is_admin_authenticated():
        st.warning("🔐 هذه الصفحة للمشرفين فقط")
        st.session_state.current_page = "admin"
        return

    store = get_store()
    st.markdown("## 💰 طلبات دعم المشاريع")

    try:
        applications = get_project_applications(store)
    except TeamUpError as error:
        st.error(f"❌ {error.message}")
        return

    stats = application_stats(applications)
    cols = st.columns(4)
    with cols[0]:
        st.markdown(stat_card("إجمالي الطلبات", stats["total"]), unsafe_allow_html=True)
    for col, status in zip(cols[1:], APPLICATION_STATUSES):
        with col:
            st.markdown(stat_card(STATUS_LABELS[status], stats[status], STATUS_COLORS[status]), unsafe_allow_html=True)

    status_filter = st.selectbox(
        "تصفية حسب الحالة",
        options=["all"] + APPLICATION_STATUSES,
        format_func=lambda value: "الكل" if value == "all" else STATUS_LABELS[value],
    )
    visible = applications if status_filter == "all" else [a for a in applications if a.status == status_filter]

    if applications:
        st.download_button(
            "⬇️ تنزيل CSV",
            data=rows_to_csv_bytes(export_applications_rows(applications)),
            file_name=export_filename("project-applications", today_str()),
            mime="text/csv",
        )

    if not visible:
        st.info("لا توجد طلبات")
        return

    for application in visible:
        _render_application(store, application)
