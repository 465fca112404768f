import streamlit as st
import os
import sys

# Ensure the project root is in sys.path
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from engine.config import configure_logging, get_settings
from ui.calculator_ui import render_calculator_ui


settings = get_settings()
configure_logging(settings.log_level)

st.title("Know Your Numbers: STI Risk Calculator")

render_calculator_ui(settings.data_dir)
