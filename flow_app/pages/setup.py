"""Data source page: load a JSON export or fetch from Jira, and configure stages."""

from __future__ import annotations

import logging

import pandas as pd
import streamlit as st
import yaml

from flow_app.app import SETUP_PAGE, register_page
from flow_app.core.config import DEFAULT_FETCH_DAYS, DEFAULT_PROJECT_KEY
from flow_app.core.jira_client import JiraAPI
from flow_app.core.service import IssueService, ProcessingResult
from flow_app.core.stages import StageClassifier, default_classifier, extract_status_names, parse_stage_mapping
from flow_app.visual.filter_sidebar import SESSION_KEY
from flow_app.visual.progress import ProgressReporter

logger = logging.getLogger(__name__)


def _jira_secrets() -> tuple[str | None, str | None, str | None]:
    jira_secrets = st.secrets.get("jira", {})
    server = jira_secrets.get("JIRA_SERVER") or st.secrets.get("JIRA_SERVER")
    email = jira_secrets.get("JIRA_EMAIL") or st.secrets.get("JIRA_EMAIL")
    token = (
        jira_secrets.get("JIRA_API_TOKEN")
        or st.secrets.get("JIRA_API_TOKEN")
        or jira_secrets.get("JIRA_TOKEN")
        or st.secrets.get("JIRA_TOKEN")
    )
    return server, email, token


def _classifier() -> StageClassifier:
    return st.session_state.get("stage_classifier") or default_classifier()


def _store_result(result: ProcessingResult, source: str) -> None:
    st.session_state["issues_df"] = result.issues
    st.session_state["raw_issues"] = result.raw_issues
    st.session_state["data_source"] = source
    st.session_state.pop(SESSION_KEY, None)
    if result.skipped:
        st.warning(
            f"Skipped {len(result.skipped)} malformed issue(s): {', '.join(result.skipped[:10])}"
            + (" ..." if len(result.skipped) > 10 else "")
        )


def _render_workflow_section() -> None:
    st.markdown("### Workflow stages")
    st.caption(
        "Status names are matched case-insensitively against these lists. Upload a workflow YAML "
        "(a `stages:` mapping of stage name to status names) to adapt them to your board."
    )
    upload = st.file_uploader("Workflow mapping (YAML)", type=["yaml", "yml"], key="workflow_upload")
    if upload is not None and st.button("Apply workflow mapping"):
        try:
            mapping = parse_stage_mapping(upload.getvalue().decode("utf-8"))
        except (ValueError, yaml.YAMLError, UnicodeDecodeError) as exc:
            logger.error("Invalid workflow mapping: %s", exc)
            st.error(f"Invalid workflow mapping: {exc}")
        else:
            st.session_state["stage_classifier"] = StageClassifier(mapping)
            raw_issues = st.session_state.get("raw_issues")
            if raw_issues:
                service = IssueService(st.session_state.get("issue_service_api"), _classifier())
                _store_result(service.process(raw_issues), st.session_state.get("data_source", ""))
            st.success("Workflow mapping applied.")

    classifier = _classifier()
    synonyms = classifier.synonyms()
    table = pd.DataFrame(
        {"Stage": stage.replace("_", " ").title(), "Status names": ", ".join(values)}
        for stage, values in synonyms.items()
    )
    st.dataframe(table, hide_index=True, width="stretch")

    raw_issues = st.session_state.get("raw_issues") or []
    if raw_issues:
        unmapped = classifier.unmapped(extract_status_names(raw_issues))
        if unmapped:
            st.info(f"Statuses not mapped to any stage (ignored): {', '.join(unmapped)}")


def _render_export_section() -> None:
    st.markdown("### Upload a JSON export")
    st.caption("Accepts a list of issues, or an object with an `issues` or `data` list.")
    upload = st.file_uploader("Issue export (JSON)", type=["json"], key="export_upload")
    if upload is None or not st.button("Load export", type="primary"):
        return
    service = IssueService(classifier=_classifier())
    with ProgressReporter(f"Loading {upload.name}") as reporter:
        try:
            result = service.load_export_bytes(upload.getvalue(), progress=reporter.callback)
        except ValueError as exc:
            reporter.error(str(exc))
            return
        _store_result(result, upload.name)
        reporter.complete(f"Loaded {result.processed} issue(s) from {upload.name}.")


def _render_jira_section() -> None:
    st.markdown("### Fetch from Jira")
    secret_server, secret_email, secret_token = _jira_secrets()
    server = st.text_input("Jira Server URL", value=st.session_state.get("jira_server") or secret_server or "")
    email = st.text_input("Email / Username", value=st.session_state.get("jira_email") or secret_email or "")
    token = st.text_input("API Token", type="password", value=secret_token or "")
    project = st.text_input("Project key", value=st.session_state.get("project_key") or DEFAULT_PROJECT_KEY)
    max_days = st.number_input(
        "Only issues created in the last N days (0 = all)",
        min_value=0,
        value=DEFAULT_FETCH_DAYS,
        step=30,
    )
    if not st.button("Fetch issues"):
        return
    if not (server and email and token and project):
        st.error("Server, email, token and project key are all required.")
        return
    with ProgressReporter(f"Fetching {project} from Jira") as reporter:
        try:
            api = JiraAPI(server, email, token)
            service = IssueService(api, _classifier())
            result = service.fetch_project(
                project.strip().upper(),
                max_days=int(max_days),
                progress=reporter.callback,
            )
        except RuntimeError as exc:
            reporter.error(f"Jira fetch failed: {exc}")
            return
        st.session_state["jira_server"] = server
        st.session_state["jira_email"] = email
        st.session_state["project_key"] = project.strip().upper()
        st.session_state["issue_service_api"] = api
        _store_result(result, f"Jira project {project.strip().upper()}")
        reporter.complete(f"Fetched {result.processed} issue(s).")


@register_page(SETUP_PAGE)
def setup_page():
    st.title("Data Source")
    df = st.session_state.get("issues_df")
    if isinstance(df, pd.DataFrame) and not df.empty:
        st.info(f"{len(df)} issue(s) loaded from {st.session_state.get('data_source', 'unknown source')}.")

    export_tab, jira_tab, workflow_tab = st.tabs(["JSON export", "Jira", "Workflow stages"])
    with export_tab:
        _render_export_section()
    with jira_tab:
        _render_jira_section()
    with workflow_tab:
        _render_workflow_section()
