# -*- coding: utf-8 -*-
"""
Streamlit frontend for MarketingGuide AI.

Run with: streamlit run root/frontend/app.py
"""
import asyncio
import logging
import time
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

import httpx
import streamlit as st

import api_client
from auth import refresh_session, require_auth, show_user_profile
from config import PROGRESS_REFRESH_SECONDS, ProductConfig, WizardConfig

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class AppConfig:
    PAGE_TITLE = "MarketingGuide AI"
    PAGE_ICON = "📈"
    LAYOUT = "wide"


# --- Session State Management ---
class SessionManager:

    @staticmethod
    def initialize_state():
        """Initializes the Streamlit session state dictionary."""
        if 'app_state' not in st.session_state:
            st.session_state.app_state = {
                'page': 'dashboard',
                'current_project_id': None,
                'current_document_id': None,
                'document_types': [],
            }
            logger.info("Initialized session state.")

    @staticmethod
    def get(key: str, default: Any = None) -> Any:
        return st.session_state.app_state.get(key, default)

    @staticmethod
    def set(key: str, value: Any):
        st.session_state.app_state[key] = value

    @staticmethod
    def open_project(project_id: Optional[str]):
        SessionManager.set('current_project_id', project_id)
        SessionManager.set('current_document_id', None)
        SessionManager.set('page', 'project' if project_id else 'dashboard')


def call_api(make_call: Callable[[], Any]) -> Any:
    """Run an api_client coroutine, refreshing the session once on a 401."""
    try:
        return asyncio.run(make_call())
    except httpx.HTTPStatusError as e:
        if e.response.status_code == 401 and refresh_session():
            return asyncio.run(make_call())
        raise


def document_types() -> List[Dict[str, Any]]:
    if not SessionManager.get('document_types'):
        SessionManager.set('document_types', call_api(api_client.get_document_types))
    return SessionManager.get('document_types')


def _format_date(value: Optional[str]) -> str:
    if not value:
        return "N/A"
    try:
        return datetime.fromisoformat(value.replace('Z', '+00:00')).strftime("%Y-%m-%d %H:%M")
    except ValueError:
        return value


# --- UI Components ---

class DashboardUI:
    """Project list with status and unlock badges."""

    def render(self):
        st.title("📈 Your Marketing Projects")
        if st.button("➕ New project", type="primary"):
            SessionManager.set('page', 'new_project')
            st.rerun()

        try:
            with st.spinner("Loading projects..."):
                projects = call_api(api_client.get_projects)
        except Exception as e:
            st.error(f"Failed to load projects: {str(e)}")
            return

        if not projects:
            st.info("No projects yet. Create one to generate your marketing documents.")
            return

        for project in projects:
            project_id = project.get('id')
            with st.container(border=True):
                col1, col2, col3 = st.columns([3, 2, 1])
                with col1:
                    badge = "🔓 Unlocked" if project.get('is_unlocked') else "🔒 Preview"
                    st.markdown(f"### {project.get('name', 'Untitled')}")
                    st.caption(f"{project.get('business_type', '')} · {badge}")
                with col2:
                    status = project.get('status', 'draft')
                    st.caption(f"Status: {'✅ Completed' if status == 'completed' else '📝 Draft'}")
                    st.caption(f"Created: {_format_date(project.get('created_at'))}")
                with col3:
                    if st.button("Open", key=f"open_{project_id}"):
                        SessionManager.open_project(project_id)
                        st.rerun()
                    if st.button("🗑️", key=f"delete_{project_id}", help="Delete project"):
                        st.session_state[f"confirm_delete_{project_id}"] = True
                        st.rerun()

            if st.session_state.get(f"confirm_delete_{project_id}"):
                st.warning(f"⚠️ Permanently delete **{project.get('name')}** and all its documents?")
                yes_col, no_col = st.columns(2)
                if yes_col.button("Yes, delete", key=f"confirm_yes_{project_id}", type="primary"):
                    try:
                        call_api(lambda: api_client.delete_project(project_id))
                    except Exception as e:
                        st.error(f"Delete failed: {str(e)}")
                    st.session_state.pop(f"confirm_delete_{project_id}", None)
                    st.rerun()
                if no_col.button("Cancel", key=f"confirm_no_{project_id}"):
                    st.session_state.pop(f"confirm_delete_{project_id}", None)
                    st.rerun()


class NewProjectUI:
    """Questionnaire wizard, one field per step."""

    def render(self):
        st.title("🧭 New project")
        step = st.session_state.setdefault('wizard_step', 0)
        answers = st.session_state.setdefault('wizard_answers', {})
        fields = WizardConfig.FIELDS

        key, label, placeholder = fields[step]
        st.progress((step + 1) / len(fields))
        st.caption(f"Step {step + 1} of {len(fields)}")

        optional = key in WizardConfig.OPTIONAL_FIELDS
        widget = st.text_area if key in ("description", "goals", "challenges") else st.text_input
        value = widget(label + (" (optional)" if optional else ""), value=answers.get(key, ""),
                       placeholder=placeholder, key=f"wizard_{key}")

        back_col, cancel_col, next_col = st.columns(3)
        if back_col.button("Back", disabled=step == 0):
            answers[key] = value
            st.session_state.wizard_step = step - 1
            st.rerun()
        if cancel_col.button("Cancel"):
            self._reset()
            SessionManager.set('page', 'dashboard')
            st.rerun()

        last = step == len(fields) - 1
        if next_col.button("Create project" if last else "Next", type="primary"):
            if not optional and not value.strip():
                st.error(f"{label} is required")
                return
            answers[key] = value.strip()
            if not last:
                st.session_state.wizard_step = step + 1
                st.rerun()
            self._create(answers)

    def _create(self, answers: Dict[str, str]):
        try:
            with st.spinner("Creating your project..."):
                project = call_api(lambda: api_client.create_project(answers))
        except Exception as e:
            st.error(f"Failed to create project: {str(e)}")
            return
        self._reset()
        SessionManager.open_project(project.get('id'))
        st.rerun()

    @staticmethod
    def _reset():
        st.session_state.pop('wizard_step', None)
        st.session_state.pop('wizard_answers', None)


class DocumentViewerUI:
    """Document list, required-info form, progress, content preview and downloads."""

    def render(self, user: Dict[str, Any]):
        project_id = SessionManager.get('current_project_id')
        try:
            response = call_api(lambda: api_client.get_project(project_id))
        except Exception as e:
            st.error(f"Failed to load project: {str(e)}")
            if st.button("Back to projects"):
                SessionManager.open_project(None)
                st.rerun()
            return

        project = response.get('project', {})
        has_access = response.get('access', False)
        documents = {d['type']: d for d in project.get('documents', [])}
        types = [t for t in document_types() if t['id'] in documents]

        if st.button("← All projects"):
            SessionManager.open_project(None)
            st.rerun()
        st.title(project.get('name', 'Project'))
        st.caption(f"{project.get('business_type', '')} · {project.get('target_audience', '')}")

        with st.sidebar:
            st.subheader("Documents")
            for doc_type in types:
                doc = documents[doc_type['id']]
                icon = {"completed": "✅", "generating": "⏳", "error": "⚠️"}.get(doc.get('status'), "📄")
                if st.button(f"{icon} {doc_type['name']}", key=f"doc_{doc['id']}", use_container_width=True):
                    SessionManager.set('current_document_id', doc['id'])
                    st.rerun()

        if not types:
            st.info("This project has no documents.")
            return

        current_id = SessionManager.get('current_document_id') or documents[types[0]['id']]['id']
        document = next((d for d in documents.values() if d['id'] == current_id), documents[types[0]['id']])
        doc_type = next(t for t in types if t['id'] == document['type'])

        if not has_access:
            CreditsUI().render_unlock(user, project_id)

        self._render_document(document, doc_type, has_access)

    def _render_document(self, document: Dict[str, Any], doc_type: Dict[str, Any], has_access: bool):
        st.header(doc_type['name'])
        st.caption(doc_type.get('description', ''))
        status = document.get('status')
        content = document.get('content') or {}

        if status == 'generating':
            progress = document.get('progress') or {}
            st.progress(min(float(progress.get('percent', 0)) / 100, 1.0),
                        text=f"{progress.get('stage', 'Working')} {progress.get('message', '')}")
            time.sleep(PROGRESS_REFRESH_SECONDS)
            st.rerun()

        if status == 'error':
            progress = document.get('progress') or {}
            st.error(f"Generation failed: {progress.get('message') or 'unknown error'}")

        required = (doc_type.get('required_info') or {}).get('questions') or []
        if required and status != 'completed' and not content.get('required_info'):
            self._render_required_info(document, required)
            return

        if status != 'generating':
            label = "🔄 Regenerate" if status == 'completed' else "✨ Generate"
            if st.button(label, type="primary"):
                try:
                    call_api(lambda: api_client.generate_document(document['id']))
                except Exception as e:
                    st.error(f"Could not start generation: {str(e)}")
                st.rerun()

        sections = content.get('sections') or []
        if document.get('locked'):
            st.info(f"🔒 Preview: showing the first {document.get('previewPercentage', 0)}% of this document. "
                    "Unlock the project to read and download everything.")
        for section in sections:
            st.subheader(section.get('title', ''))
            if section.get('content'):
                st.markdown(section['content'])

        if has_access and sections and status == 'completed':
            self._render_downloads(document)

    def _render_required_info(self, document: Dict[str, Any], questions: List[Dict[str, Any]]):
        st.subheader("A few details first")
        with st.form(f"required_info_{document['id']}"):
            answers = {
                q['id']: st.text_area(q['question'], placeholder=q.get('placeholder') or "")
                for q in questions
            }
            submit_col, skip_col = st.columns(2)
            submitted = submit_col.form_submit_button("Save and generate", type="primary")
            skipped = skip_col.form_submit_button("Skip")

        if submitted or skipped:
            try:
                call_api(lambda: api_client.submit_required_info(document['id'], answers, skipped=skipped))
            except Exception as e:
                st.error(f"Could not save answers: {str(e)}")
                return
            st.rerun()

    def _render_downloads(self, document: Dict[str, Any]):
        pdf_col, docx_col = st.columns(2)
        for fmt, col in (("pdf", pdf_col), ("docx", docx_col)):
            # Keyed by version so a regenerated document is fetched again
            cache_key = f"export_{document['id']}_{document.get('version')}_{fmt}"
            if cache_key not in st.session_state:
                if col.button(f"📄 Prepare {fmt.upper()}", key=f"prepare_{cache_key}", use_container_width=True):
                    try:
                        st.session_state[cache_key] = call_api(
                            lambda fmt=fmt: api_client.export_document(document['id'], fmt)
                        )
                    except Exception as e:
                        col.error(f"{fmt.upper()} export failed: {str(e)}")
                        continue
                else:
                    continue
            data, filename = st.session_state[cache_key]
            col.download_button(
                f"⬇️ Download {fmt.upper()}",
                data=data,
                file_name=filename,
                key=f"download_{cache_key}",
                use_container_width=True,
            )


class CreditsUI:
    """Credit balance, purchases and unlock actions."""

    def render_sidebar(self, user: Dict[str, Any]):
        with st.sidebar:
            st.markdown("---")
            st.subheader("💳 Credits")
            try:
                credits = call_api(lambda: api_client.get_credits(user['id']))
                purchases = call_api(lambda: api_client.get_purchases(user['id']))
            except Exception as e:
                st.caption(f"Credits unavailable: {str(e)}")
                return
            st.metric("Balance", credits.get('creditBalance', 0))
            for purchase in purchases:
                uses = purchase.get('remaining_uses')
                suffix = f" · {uses} uses left" if uses is not None else ""
                st.caption(f"{purchase.get('product_id')} · {_format_date(purchase.get('purchase_date'))}{suffix}")

    def render_unlock(self, user: Dict[str, Any], project_id: str):
        with st.expander("🔓 Unlock this project", expanded=False):
            try:
                credits = call_api(lambda: api_client.get_credits(user['id']))
            except Exception as e:
                st.error(f"Could not load credits: {str(e)}")
                credits = {}

            balance = credits.get('creditBalance', 0)
            credit_col, pack_col = st.columns(2)
            if credit_col.button(f"Use 1 credit ({balance} available)", disabled=balance <= 0 or not credits.get('customerId')):
                self._apply_credit(credits['customerId'], project_id)
            if pack_col.button("Use agency pack"):
                self._apply_pack(user['id'], project_id)

            st.markdown("**Or buy access**")
            products = ProductConfig.purchasable()
            if not products:
                st.caption("No products configured.")
            for product_id, info in products.items():
                if st.button(f"{info['name']}: {info['description']}", key=f"buy_{product_id}"):
                    try:
                        session = call_api(lambda: api_client.create_checkout(info['price_id'], product_id, user['id'], project_id))
                        st.link_button("Continue to secure checkout", session['url'], type="primary")
                    except Exception as e:
                        st.error(f"Checkout failed: {str(e)}")

    def _apply_credit(self, customer_id: str, project_id: str):
        try:
            result = call_api(lambda: api_client.apply_credit(customer_id, project_id))
        except Exception as e:
            st.error(f"Could not apply credit: {str(e)}")
            return
        st.success(f"{result.get('message')} ({result.get('creditBalance')} credits left)")
        st.rerun()

    def _apply_pack(self, user_id: str, project_id: str):
        try:
            applied = call_api(lambda: api_client.apply_pack(user_id, project_id))
        except Exception as e:
            st.error(f"Could not apply agency pack: {str(e)}")
            return
        if not applied:
            st.warning("No agency pack uses available.")
            return
        st.rerun()


# --- Main Application Class ---
class MarketingGuideApp:
    def __init__(self):
        self.dashboard = DashboardUI()
        self.new_project = NewProjectUI()
        self.viewer = DocumentViewerUI()
        self.credits = CreditsUI()

    def setup(self):
        """Sets up Streamlit page configuration."""
        st.set_page_config(page_title=AppConfig.PAGE_TITLE, page_icon=AppConfig.PAGE_ICON, layout=AppConfig.LAYOUT)
        SessionManager.initialize_state()

    def run(self):
        self.setup()
        if not call_api(api_client.health_check):
            st.warning("The MarketingGuide API is not reachable. Some features may not work.")
        user = require_auth()
        show_user_profile()
        self.credits.render_sidebar(user)

        params = st.query_params
        if params.get("success") == "true":
            st.success("Payment received. Your purchase will appear in a moment.")
        elif params.get("canceled") == "true":
            st.info("Checkout canceled.")

        page = SessionManager.get('page')
        if page == 'new_project':
            self.new_project.render()
        elif page == 'project' and SessionManager.get('current_project_id'):
            self.viewer.render(user)
        else:
            self.dashboard.render()


# --- Application Entry Point ---
if __name__ == "__main__":
    app = MarketingGuideApp()
    app.run()
