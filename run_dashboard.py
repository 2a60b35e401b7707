"""Convenience launcher for the Streamlit app.

Usage:
  streamlit run run_dashboard.py

Automatically imports every module in ``flow_app/pages`` so each page
decorated with ``@register_page`` registers itself without manual edits here.
Modules whose name starts with an underscore are helpers, not pages.
"""

import logging
from importlib import import_module
from pathlib import Path

import streamlit as st

from flow_app.app import main
from flow_app.core.config import SETTINGS

logging.basicConfig(
    level=getattr(logging, SETTINGS.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("flow_app")

st.set_page_config(page_title="Flow Metrics", layout="wide")

PAGES_DIR = Path(__file__).parent / "flow_app" / "pages"
for py in sorted(PAGES_DIR.glob("[!_]*.py")):
    mod_name = f"flow_app.pages.{py.stem}"
    try:
        import_module(mod_name)
    except Exception:  # pragma: no cover
        logger.exception("Failed importing page %s", mod_name)

if __name__ == "__main__":
    main()
