"""
TeamUp — مسابقة تكوين الفرق
TeamUp competition registration and team formation
"""
import logging
import streamlit as st

from src.ui.home import render_home
from src.ui.join_form import render_join_form
from src.ui.admin_panel import render_admin_panel
from src.ui.groups_view import render_groups_view
from src.ui.project_support_form import render_project_support_form
from src.ui.project_support_admin import render_project_support_admin

logger = logging.getLogger(__name__)


st.set_page_config(
    page_title="TeamUp",
    page_icon="🚀",
    layout="wide",
    initial_sidebar_state="collapsed"
)

PAGES = {
    "home": render_home,
    "join": render_join_form,
    "project_support": render_project_support_form,
    "admin": render_admin_panel,
    "groups": render_groups_view,
    "project_support_admin": render_project_support_admin,
}


def initialize_session_state():
    """Set session state defaults."""
    if "current_page" not in st.session_state:
        st.session_state.current_page = "home"

    if "admin_authenticated" not in st.session_state:
        st.session_state.admin_authenticated = False

    # Deep links: ?page=join
    if "url_params_processed" not in st.session_state:
        page = st.query_params.get("page")
        if page in PAGES:
            st.session_state.current_page = page
        st.session_state.url_params_processed = True


def apply_custom_css():
    """Right-to-left layout and shared card styles."""
    st.markdown("""
        <style>
        .stApp {
            background: linear-gradient(135deg, #0f0c29 0%, #1a1a2e 50%, #16213e 100%);
        }

        [data-testid="stAppViewContainer"] .main .block-container {
            direction: rtl;
            text-align: right;
            padding-top: 1.5rem;
        }

        #MainMenu {visibility: hidden;}
        footer {visibility: hidden;}

        .stButton > button {
            border-radius: 12px;
            font-weight: 600;
        }

        .stButton > button[kind="primary"] {
            background: linear-gradient(135deg, #667eea 0%, #764ba2 100%);
            color: white;
        }

        .hero {
            text-align: center;
            padding: 32px 16px;
        }

        .hero h1 {
            font-size: 48px;
            color: #f8fafc;
        }

        .hero p {
            color: rgba(203, 213, 225, 0.85);
            font-size: 18px;
        }

        .stat-card {
            background: rgba(15, 17, 40, 0.92);
            border-radius: 16px;
            padding: 16px;
            margin-bottom: 16px;
            text-align: center;
        }

        .stat-value {
            font-size: 32px;
            font-weight: 700;
            color: #f8fafc;
        }

        .stat-label {
            color: rgba(203, 213, 225, 0.85);
        }

        .login-title {
            color: #f8fafc;
            font-size: 30px;
            font-weight: 700;
            text-align: center;
        }

        .login-description {
            color: rgba(203, 213, 225, 0.85);
            text-align: center;
            margin-bottom: 16px;
        }
        </style>
    """, unsafe_allow_html=True)


def render_navigation():
    """Top navigation buttons."""
    nav_col1, nav_col2, nav_col3, nav_col4 = st.columns(4, gap="small")

    with nav_col1:
        if st.button("🏠 الرئيسية", width='stretch', key="nav_home"):
            st.session_state.current_page = "home"

    with nav_col2:
        if st.button("📝 التسجيل", width='stretch', key="nav_join"):
            st.session_state.current_page = "join"

    with nav_col3:
        if st.button("💰 دعم المشاريع", width='stretch', key="nav_support"):
            st.session_state.current_page = "project_support"

    with nav_col4:
        if st.button("🛠️ المشرف", width='stretch', key="nav_admin"):
            st.session_state.current_page = "admin"


def render_current_page():
    """Render the page named by st.session_state.current_page."""
    try:
        render = PAGES.get(st.session_state.current_page)
        if render is None:
            st.error(f"صفحة غير معروفة: {st.session_state.current_page}")
            if st.button("العودة للرئيسية"):
                st.session_state.current_page = "home"
                st.rerun()
            return

        render()

    except Exception as e:
        logger.exception("Unhandled exception while rendering page")
        st.error("حدث خطأ، حاول مرة أخرى")

        with st.expander("🔍 تفاصيل الخطأ"):
            st.code(str(e))

        if st.button("العودة للرئيسية"):
            st.session_state.current_page = "home"
            st.rerun()


def main():
    """Application entry point."""
    try:
        initialize_session_state()
        apply_custom_css()
        render_navigation()
        render_current_page()
    except Exception as e:
        logger.exception("Unhandled exception during app execution")
        st.error("حدث خطأ في التطبيق، من فضلك أعد تحميل الصفحة")
        st.code(str(e))

        if st.button("🔄 إعادة التحميل"):
            st.session_state.clear()
            st.rerun()


if __name__ == "__main__":
    main()
