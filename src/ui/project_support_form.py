"""Funding program application form."""
import logging

import streamlit as st

from src.models.application import MAX_TEAM_MEMBERS
from src.services.project_support_service import register_project_application
from src.services.store import get_store
from src.utils.exceptions import TeamUpError

logger = logging.getLogger(__name__)


def render_project_support_form():
    st.markdown("## 💰 برنامج دعم المشاريع")

    member_count = st.number_input(
        "عدد أعضاء الفريق", min_value=1, max_value=MAX_TEAM_MEMBERS, value=1, key="support_member_count",
    )

    with st.form("project_support_form", clear_on_submit=False):
        st.markdown("### 📌 المشروع")
        team_name = st.text_input("اسم الفريق")
        project_name = st.text_input("اسم المشروع")
        project_description = st.text_area("وصف المشروع")
        problem_statement = st.text_area("المشكلة اللي بتحلها")

        st.markdown("### 📈 الإنجازات")
        traction_mvp = st.checkbox("عندنا MVP")
        mvp_details = st.text_input("تفاصيل الـ MVP")
        traction_pilot = st.checkbox("عملنا Pilot")
        pilot_details = st.text_input("تفاصيل الـ Pilot")
        traction_sales = st.checkbox("عندنا مبيعات")
        sales_details = st.text_input("تفاصيل المبيعات")
        other_details = st.text_input("إنجازات أخرى")
        traction_links = st.text_input("روابط")

        st.markdown("### 🎬 العرض")
        video_pitch = st.text_input("رابط فيديو العرض")
        demo_link = st.text_input("رابط الديمو")

        st.markdown("### 🤝 الدعم")
        support_needs = st.text_area("نوع الدعم المطلوب")
        expected_growth = st.text_area("النمو المتوقع")

        st.markdown("### 👥 الفريق")
        team_members = []
        for index in range(int(member_count)):
            col1, col2, col3, col4 = st.columns(4)
            with col1:
                name = st.text_input("الاسم", key=f"support_member_name_{index}")
            with col2:
                phone = st.text_input("الموبايل", key=f"support_member_phone_{index}")
            with col3:
                email = st.text_input("الإيميل", key=f"support_member_email_{index}")
            with col4:
                role = st.text_input("الدور", key=f"support_member_role_{index}")
            team_members.append({"name": name, "phone": phone, "email": email, "role": role})

        accepted_terms = st.checkbox("أوافق على الشروط والأحكام")
        submit = st.form_submit_button("🚀 قدّم الطلب", type="primary", width='stretch')

    if not submit:
        return

    if not accepted_terms:
        st.error("❌ يجب الموافقة على الشروط والأحكام")
        return

    data = {
        "team_name": team_name,
        "project_name": project_name,
        "project_description": project_description,
        "problem_statement": problem_statement,
        "traction_mvp": traction_mvp,
        "traction_pilot": traction_pilot,
        "traction_sales": traction_sales,
        "traction_links": traction_links,
        "traction_details": {"mvp": mvp_details, "pilot": pilot_details, "sales": sales_details, "other": other_details},
        "video_pitch": video_pitch,
        "demo_link": demo_link,
        "support_needs": support_needs,
        "expected_growth": expected_growth,
    }

    try:
        application = register_project_application(get_store(), data, team_members)
    except TeamUpError as error:
        st.error(f"❌ {error.message}")
        return
    except Exception:
        logger.exception("Unexpected error during project application")
        st.error("❌ فشل في تقديم الطلب. حاول مرة أخرى.")
        return

    st.success(f"✅ تم استلام طلب مشروع **{application.project_name}**، هنتواصل معاك قريب")
