"""
Main entry point for the Reach & Frequency Planner application.

Run with: streamlit run main.py
"""
import logging
import streamlit as st
from dotenv import load_dotenv

from config.settings import config_manager
from data.manager import DataManager
from ui.components import (
    PlanSummaryPanel, TacticFormComponent, TacticResultCard,
    display_notifications, empty_tactic_row, reset_row_state,
)
from business_logic.error_handler import error_handler
from business_logic.plan_controller import ReachPlanController

# Load environment variables from .env file
load_dotenv()

# Set up logging
logger = logging.getLogger(__name__)


def main():
    """Main application entry point."""
    st.set_page_config(
        page_title="Reach & Frequency Planner",
        page_icon="📡",
        layout="wide",
        initial_sidebar_state="collapsed"
    )

    st.title("📡 Reach & Frequency Planner")
    st.markdown(
        "Enter media tactics, calculate reach, frequency and GRPs, and combine tactics "
        "into a de-duplicated plan."
    )

    config = config_manager.load_config()

    data_manager = DataManager(
        audience_data_path=config.audience_data_path,
        cache_ttl_hours=config_manager.get_cache_timeout(),
        default_channel=config.default_channel
    )

    # The audience lookup is optional; sizes can always be typed in
    audience_table = None
    try:
        audience_table = data_manager.load_audience_table()
    except (FileNotFoundError, PermissionError, ValueError) as e:
        error_info = error_handler.classify_error(e, "audience data loading")
        error_handler.log_error(error_info, "Audience data")
        st.sidebar.warning(f"⚠️ {error_info.user_message} {error_info.suggested_action}")

    if 'tactics' not in st.session_state:
        st.session_state['tactics'] = [empty_tactic_row(config.default_channel)]

    form = TacticFormComponent(data_manager, audience_table, max_tactics=config.max_tactics)

    replacement = form.render_toolbar(st.session_state['tactics'], config.default_channel)
    if replacement is not None:
        reset_row_state(replacement)
        st.session_state['tactics'] = replacement
        st.session_state.pop('calculation', None)
        st.rerun()

    calculation = st.session_state.get('calculation')
    field_errors = calculation.field_errors if calculation else {}

    rows, selected_ids = form.render(st.session_state['tactics'], field_errors)
    if len(rows) != len(st.session_state['tactics']):
        st.session_state['tactics'] = rows
        st.rerun()
    st.session_state['tactics'] = rows

    if st.button("🧮 Calculate", type="primary", use_container_width=True):
        controller = ReachPlanController(grps_tolerance=config_manager.get_grps_tolerance())
        st.session_state['calculation'] = controller.calculate(rows, selected_ids)
        st.session_state['calculation_selected'] = len(selected_ids)
        st.rerun()

    if calculation is not None:
        if calculation.has_field_errors:
            st.error("❌ Some tactics have invalid inputs. Fix the highlighted fields and calculate again.")
        else:
            st.subheader("🎯 Tactic Results")
            for resolved in calculation.resolved:
                TacticResultCard().render(resolved)

            results_df = data_manager.results_to_dataframe(calculation.resolved)
            st.download_button(
                "📥 Download Results (CSV)",
                data=results_df.to_csv(index=False),
                file_name="reach-frequency-results.csv",
                mime="text/csv"
            )

            PlanSummaryPanel(data_manager).render(
                calculation.summary,
                calculation.plan_error,
                st.session_state.get('calculation_selected', 0)
            )

        display_notifications(calculation.notifications)

    # Display current configuration (for development)
    with st.expander("System Information"):
        col1, col2 = st.columns(2)

        with col1:
            st.write("**Configuration:**")
            st.write(f"GRP Conflict Tolerance: {config.grps_conflict_tolerance}")
            st.write(f"Max Tactics: {config.max_tactics}")
            st.write(f"Default Channel: {config.default_channel}")
            st.write(f"Plan Upload Limit: {config.max_file_size_mb} MB")

        with col2:
            st.write("**Data Status:**")
            st.write(f"Audience Data: {config.audience_data_path}")
            if audience_table is not None:
                st.write(f"Markets Available: {len(audience_table.list_markets())}")
            else:
                st.write("Markets Available: lookup disabled")

        st.write("**Errors (last 24h):**")
        st.json(error_handler.get_error_statistics())


if __name__ == "__main__":
    main()
