"""Groups page with per-group delete and CSV download."""
import logging

import streamlit as st

from src.services.admin_service import is_admin_authenticated
from src.services.export_service import export_filename, export_groups_rows, rows_to_csv_bytes
from src.services.group_service import delete_group, get_groups
from src.services.store import get_store
from src.utils.date_utils import today_str
from src.utils.exceptions import TeamUpError

logger = logging.getLogger(__name__)


def render_groups_view():
    """List every group with its members."""
    if not is_admin_authenticated():
        st.warning("🔐 هذه الصفحة للمشرفين فقط")
        st.session_state.current_page = "admin"
        return

    store = get_store()

    try:
        groups = get_groups(store)
    except TeamUpError as error:
        st.error(f"❌ {error.message}")
        return

    col1, col2 = st.columns([3, 1])
    with col1:
        st.markdown(f"## 📋 المجموعات ({len(groups)})")
    with col2:
        if st.button("↩️ لوحة التحكم", width='stretch'):
            st.session_state.current_page = "admin"
            st.rerun()

    if not groups:
        st.info("لم يتم تكوين مجموعات بعد")
        return

    st.download_button(
        "⬇️ تنزيل CSV",
        data=rows_to_csv_bytes(export_groups_rows(groups)),
        file_name=export_filename("teamup-groups", today_str()),
        mime="text/csv",
        width='stretch',
    )

    for group in groups:
        with st.expander(f"{group.name} — {len(group.member_records)} أعضاء", expanded=False):
            for member in group.member_records:
                st.write(f"• **{member.name}** — {member.phone} — {member.college or '—'} — {member.interest_label()}")

            if len(group.member_records) != group.member_count:
                st.caption(f"⚠️ العدد المسجل وقت الإنشاء: {group.member_count}")

            if st.button("🗑️ حذف المجموعة", key=f"delete_group_{group.id}"):
                try:
                    delete_group(store, group.id)
                except TeamUpError as error:
                    st.error(f"❌ {error.message}")
                else:
                    st.success("تم حذف المجموعة وإرجاع أعضائها لغير مقسمين")
                    st.rerun()
