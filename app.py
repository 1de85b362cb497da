import streamlit as st

import config
import views
from api import ApiClient, RequestTracker
from resources import (
    EQUIPMENT_MANAGEMENT, RETURN_AUTH, STATUS_BOARD_AUTH, TRANSACTIONS_AUTH, USER_MANAGEMENT, by_group,
)
from session import NOTICE_KEY, ROUTE_KEY, clear_pages, current, sign_in, sign_out

# Page Configuration
st.set_page_config(
    page_title=config.APP_NAME,
    page_icon="🛠️",
    layout="wide",
    initial_sidebar_state="expanded"
)
config.setup_logging()

# --- SESSION STATE MANAGEMENT ---
if ROUTE_KEY not in st.session_state: st.session_state[ROUTE_KEY] = config.SIGNIN_ROUTE
if 'tracker' not in st.session_state: st.session_state.tracker = RequestTracker()
if 'dark_mode' not in st.session_state: st.session_state.dark_mode = False

session = current(st.session_state)
api = ApiClient(token=session.token if session else None, tracker=st.session_state.tracker)


# --- DYNAMIC THEME STYLING ---
def get_css(is_dark):
    if is_dark:
        bg_color, sidebar_bg, text_color = "#0e1117", "#262730", "#ffffff"
        metric_bg, metric_border = "#1e1e1e", "#606060"
        input_bg, input_border = "#000000", "#ffffff"
    else:
        bg_color, sidebar_bg, text_color = "#ffffff", "#f0f2f6", "#000000"
        metric_bg, metric_border = "#ffffff", "#dcdcdc"
        input_bg, input_border = "#ffffff", "#dcdcdc"

    return f"""
        <style>
            .stApp {{ background-color: {bg_color}; color: {text_color}; }}
            section[data-testid="stSidebar"] {{ background-color: {sidebar_bg}; border-right: 1px solid {metric_border}; }}
            .stTextInput input, .stTextArea textarea {{ background-color: {input_bg} !important; color: {text_color} !important; border: 1px solid {input_border} !important; border-radius: 5px; }}
            div[data-baseweb="select"] > div {{ background-color: {input_bg} !important; color: {text_color} !important; }}
            div[data-testid="stMetric"] {{ background-color: {metric_bg}; border: 1px solid {metric_border}; border-radius: 5px; padding: 8px 12px; }}
            h1, h2, h3, h4, h5, h6 {{ color: {text_color} !important; }}
            footer {{visibility: hidden;}}
        </style>
    """


def apply_theme(is_dark):
    st.markdown(get_css(is_dark), unsafe_allow_html=True)


def show_notice():
    if NOTICE_KEY in st.session_state:
        st.warning(st.session_state.pop(NOTICE_KEY))


# --- NAVIGATION ---
def build_pages(permissions):
    """(label, group, render) for every page the user may open, in menu order."""
    pages = [(config.ROOT_ROUTE, "", lambda: views.show_dashboard(api, permissions, session))]
    for group in (USER_MANAGEMENT, EQUIPMENT_MANAGEMENT):
        for resource in by_group(group):
            if resource.can("list", permissions):
                pages.append((resource.title, group, lambda r=resource: views.show_resource(api, permissions, r)))
    if STATUS_BOARD_AUTH.allows(permissions):
        pages.append(("Equipment Status Board", EQUIPMENT_MANAGEMENT, lambda: views.show_equipment_status(api, permissions)))
    if TRANSACTIONS_AUTH.allows(permissions):
        pages.append(("Transactions", EQUIPMENT_MANAGEMENT, lambda: views.show_transactions(api)))
    if RETURN_AUTH.allows(permissions):
        pages.append(("Equipment Return", EQUIPMENT_MANAGEMENT, lambda: views.show_equipment_return(api)))
    return pages


# --- AUTHENTICATION FLOW ---
if session is None:
    apply_theme(False)
    col1, col2, col3 = st.columns([1, 1, 1])
    with col2:
        st.header("Sign In")
        st.caption(config.APP_NAME)
        show_notice()
        email = st.text_input("E-mail")
        password = st.text_input("Password", type="password")

        if st.button("Sign In", type="primary", use_container_width=True):
            if not email.strip() or not password:
                st.error("Please enter your e-mail and password.")
            else:
                outcome = api.login(email.strip(), password)
                if outcome.ok:
                    sign_in(st.session_state, outcome.data)
                    st.rerun()
                else:
                    st.error(outcome.message)
else:
    # --- MAIN APP LAYOUT ---
    st.sidebar.title("🛠️ Admin Console")
    st.sidebar.markdown(f"""
        <div style="background-color: #262730; border: 1px solid #444; border-radius: 5px; padding: 5px 10px; margin-bottom: 20px; text-align: center;">
            <span style="color: #888; font-size: 0.8em;">VERSION</span><br>
            <span style="color: #fff; font-weight: bold;">{config.APP_VERSION}</span>
        </div>
        """, unsafe_allow_html=True)

    st.sidebar.info(f"User: **{session.name}**\n\n{session.email}")
    st.sidebar.divider()

    def toggle_theme(): st.session_state.dark_mode = not st.session_state.dark_mode
    st.sidebar.toggle("🌙 Dark Mode", value=st.session_state.dark_mode, on_change=toggle_theme)
    apply_theme(st.session_state.dark_mode)

    permissions = views.load_permissions(api)
    pages = build_pages(permissions)
    labels = [label for label, _, _ in pages]
    route = st.session_state[ROUTE_KEY]
    if route not in labels: route = config.ROOT_ROUTE

    choice = st.sidebar.radio("Navigation", labels, index=labels.index(route), captions=[group for _, group, _ in pages])
    st.sidebar.markdown("---")

    if st.sidebar.button("Logout", type="secondary"):
        sign_out(st.session_state)
        st.rerun()

    if choice != st.session_state[ROUTE_KEY]:
        # Every page mounts fresh.
        clear_pages(st.session_state)
        st.session_state[ROUTE_KEY] = choice
        st.rerun()

    show_notice()
    views.show_flash()
    for label, _, render in pages:
        if label == choice: render()
