"""
UI components for the Reach & Frequency Planner.
"""

import streamlit as st
import plotly.graph_objects as go
from typing import Dict, Any, List, Optional, Tuple
import logging
import uuid

from business_logic.input_status import OverallStatus, analyze_row_inputs
from config.settings import config_manager
from data.audience import AGE_SNAP_POINTS, HOUSEHOLDS, HOUSEHOLDS_LABEL, SEXES, AudienceTable
from data.manager import DataManager
from models.data_models import Channel, PlanSummaryResult, ResolvedTactic
from ui.formatters import fmt2, fmt_currency, fmt_int, fmt_percent

logger = logging.getLogger(__name__)

TEXT_FIELDS = [
    ('tacticName', "Tactic Name *"),
    ('geoName', "Geo / Market *"),
    ('audienceName', "Audience *"),
    ('audienceSize', "Audience Size *"),
]

METRIC_FIELDS = [
    ('cost', "Cost ($)"),
    ('cpm', "CPM ($)"),
    ('grossImpressions', "Gross Impressions"),
    ('grps', "GRPs"),
    ('reachPercent', "Reach %"),
    ('frequency', "Frequency"),
]

STATUS_ICONS = {
    OverallStatus.READY: "✅",
    OverallStatus.PARTIAL: "🟡",
    OverallStatus.INSUFFICIENT: "⚪",
}


def empty_tactic_row(default_channel: str = Channel.DIGITAL.value) -> Dict[str, Any]:
    """A blank form row with a fresh id."""
    row = {'id': str(uuid.uuid4()), 'channel': default_channel}
    for key, _ in TEXT_FIELDS + METRIC_FIELDS:
        row[key] = ""
    return row


def reset_row_state(rows: List[Dict[str, Any]]):
    """Forget widget state for rows so they show their stored values again."""
    for row in rows:
        for key, _ in TEXT_FIELDS + METRIC_FIELDS + [('channel', None), ('include', None)]:
            st.session_state.pop(f"{key}_{row['id']}", None)


def record_to_form_row(record: Dict[str, Any]) -> Dict[str, Any]:
    """Form row (all text) for an imported tactic record."""
    row = {'id': record.get('id') or str(uuid.uuid4()), 'channel': record.get('channel') or Channel.DIGITAL.value}
    for key, _ in TEXT_FIELDS + METRIC_FIELDS:
        value = record.get(key)
        row[key] = "" if value is None else str(value)
    return row


class TacticFormComponent:
    """
    Editable list of tactic rows.

    Each row holds raw text for every tactic field, a channel, an
    include-in-plan checkbox and a live readiness line.
    """

    def __init__(self, data_manager: DataManager, audience_table: Optional[AudienceTable] = None,
                 max_tactics: int = 25):
        """
        Initialize the TacticFormComponent.

        Args:
            data_manager: DataManager for plan import and export
            audience_table: Optional table for the audience-size lookup helper
            max_tactics: Maximum number of rows a plan may hold
        """
        self.data_manager = data_manager
        self.audience_table = audience_table
        self.max_tactics = max_tactics

    def render(self, rows: List[Dict[str, Any]],
               field_errors: Dict[str, Dict[str, List[str]]]) -> Tuple[List[Dict[str, Any]], List[str]]:
        """
        Render every tactic row.

        Args:
            rows: Current form rows
            field_errors: Validation messages keyed by row id and field

        Returns:
            Tuple of (edited rows, ids of rows included in the plan)
        """
        st.subheader("📋 Tactics")

        edited_rows = []
        selected_ids = []
        removed_ids = []

        if rows:
            row_ids = [row['id'] for row in rows]
            all_included = all(st.session_state.get(f"include_{row_id}", False) for row_id in row_ids)
            st.button(
                "Deselect All" if all_included else "Select All", key="toggle_include_all",
                on_click=self._set_all_included, args=(row_ids, not all_included)
            )

        for index, row in enumerate(rows):
            row_id = row['id']
            self._init_row_state(row)

            with st.container(border=True):
                header_col, include_col, remove_col = st.columns([6, 2, 1])
                with header_col:
                    st.markdown(f"**Tactic {index + 1}**")
                with include_col:
                    if st.checkbox("Include in plan", key=f"include_{row_id}"):
                        selected_ids.append(row_id)
                with remove_col:
                    if st.button("🗑️", key=f"remove_{row_id}", help="Remove this tactic"):
                        removed_ids.append(row_id)

                edited = {'id': row_id}
                identity_cols = st.columns(len(TEXT_FIELDS) + 1)
                for col, (key, label) in zip(identity_cols, TEXT_FIELDS):
                    with col:
                        edited[key] = st.text_input(label, key=f"{key}_{row_id}")
                with identity_cols[-1]:
                    edited['channel'] = st.selectbox("Channel", Channel.names(), key=f"channel_{row_id}")

                metric_cols = st.columns(len(METRIC_FIELDS))
                for col, (key, label) in zip(metric_cols, METRIC_FIELDS):
                    with col:
                        edited[key] = st.text_input(label, key=f"{key}_{row_id}")

                status = analyze_row_inputs(edited)
                st.caption(f"{STATUS_ICONS[status.overall_status]} {status.guidance_message}")

                if row_id in field_errors:
                    self._display_validation_errors(field_errors[row_id])

                if self.audience_table is not None:
                    self._render_audience_lookup(row_id)

            edited_rows.append(edited)

        edited_rows = [r for r in edited_rows if r['id'] not in removed_ids]
        selected_ids = [i for i in selected_ids if i not in removed_ids]
        return edited_rows, selected_ids

    def render_toolbar(self, rows: List[Dict[str, Any]], default_channel: str) -> Optional[List[Dict[str, Any]]]:
        """
        Render add / sample / import / export controls.

        Returns:
            Replacement rows when the toolbar changed the plan, else None
        """
        col1, col2, col3 = st.columns(3)

        with col1:
            if st.button("➕ Add Tactic", use_container_width=True, disabled=len(rows) >= self.max_tactics):
                return rows + [empty_tactic_row(default_channel)]

        with col2:
            if st.button("📄 Load Sample Plan", use_container_width=True):
                return [record_to_form_row(r) for r in self.data_manager.load_sample_plan()]

        with col3:
            st.download_button(
                "📥 Export Plan (JSON)",
                data=self.data_manager.export_plan(rows),
                file_name="reach-frequency-plan.json",
                mime="application/json",
                use_container_width=True
            )

        formats = [fmt.lstrip('.') for fmt in config_manager.load_config().supported_file_formats]
        uploaded = st.file_uploader("Import a plan file", type=formats, key="plan_import")
        if uploaded is not None and st.session_state.get('last_import') != uploaded.file_id:
            st.session_state['last_import'] = uploaded.file_id
            upload_error = config_manager.check_upload(uploaded.name, uploaded.size)
            if upload_error:
                logger.warning(f"Rejected plan upload: {upload_error}")
                st.error(f"❌ {upload_error}")
                return None
            try:
                records = self.data_manager.import_plan(uploaded.getvalue().decode('utf-8'))
            except (UnicodeDecodeError, ValueError) as e:
                st.error(f"❌ {str(e)}")
                return None
            return [record_to_form_row(r) for r in records[:self.max_tactics]]

        return None

    def _init_row_state(self, row: Dict[str, Any]):
        """Seed widget state for a row the first time it is shown."""
        row_id = row['id']
        for key, _ in TEXT_FIELDS + METRIC_FIELDS:
            st.session_state.setdefault(f"{key}_{row_id}", row.get(key, ""))
        channel = row.get('channel') if row.get('channel') in Channel.names() else Channel.DIGITAL.value
        st.session_state.setdefault(f"channel_{row_id}", channel)
        st.session_state.setdefault(f"include_{row_id}", False)

    def _render_audience_lookup(self, row_id: str):
        """Fill geo, audience and audience size from the population table."""
        with st.expander("🔎 Look up audience size"):
            markets = self.audience_table.list_markets()
            market = st.selectbox(
                "Market", markets, format_func=lambda m: m[1], key=f"lookup_market_{row_id}"
            )
            age_min, age_max = st.select_slider(
                "Age range", options=AGE_SNAP_POINTS, value=(25, 50), key=f"lookup_age_{row_id}",
                help="Each stop is the start of a census age cell; the upper stop includes its whole cell."
            )
            # Upper bound covers the whole selected cell
            age_max = 999 if age_max == AGE_SNAP_POINTS[-1] else AGE_SNAP_POINTS[AGE_SNAP_POINTS.index(age_max) + 1] - 1
            basis = st.radio(
                "Count", list(SEXES) + [HOUSEHOLDS], horizontal=True, key=f"lookup_basis_{row_id}",
                format_func=lambda b: HOUSEHOLDS_LABEL if b == HOUSEHOLDS else b.capitalize(),
                help="Households ignores the age range."
            )

            label, size = self.audience_table.lookup(market[0], age_min, age_max, basis)
            st.write(f"**{label}** in {market[1]}: {fmt_int(size)}")

            if size is not None:
                st.button(
                    "Use this audience", key=f"lookup_use_{row_id}",
                    on_click=self._apply_lookup, args=(row_id, market[1], label, size)
                )

    @staticmethod
    def _set_all_included(row_ids: List[str], included: bool):
        """Tick or clear the include-in-plan checkbox of every row."""
        for row_id in row_ids:
            st.session_state[f"include_{row_id}"] = included

    @staticmethod
    def _apply_lookup(row_id: str, geo_name: str, audience_name: str, audience_size: int):
        # Runs as a callback, before the row widgets are rebuilt
        st.session_state[f"geoName_{row_id}"] = geo_name
        st.session_state[f"audienceName_{row_id}"] = audience_name
        st.session_state[f"audienceSize_{row_id}"] = str(audience_size)

    def _display_validation_errors(self, errors: Dict[str, List[str]]):
        """
        Display validation errors for a row.

        Args:
            errors: Field names to error messages
        """
        labels = dict(TEXT_FIELDS + METRIC_FIELDS + [('channel', "Channel"), ('_form', "Inputs")])
        for field, messages in errors.items():
            for message in messages:
                st.error(f"• {labels.get(field, field).rstrip(' *')}: {message}")


class TacticResultCard:
    """Results card for one resolved tactic."""

    def render(self, resolved: ResolvedTactic):
        status = "✅ Fully resolved" if resolved.is_fully_resolved else "⚠️ Partially resolved"
        if resolved.errors:
            status = "❌ Could not resolve"

        with st.container(border=True):
            st.markdown(f"#### {resolved.tactic_name}")
            st.caption(
                f"{resolved.channel} · {resolved.geo_name} · {resolved.audience_name} "
                f"({fmt_int(resolved.audience_size)}) · {status}"
            )

            reach_label = fmt_percent(resolved.reach_percent, 2)
            if resolved.reach_percent_estimated:
                reach_label += " (est.)"

            col1, col2, col3 = st.columns(3)
            with col1:
                st.metric("GRPs", fmt2(resolved.grps))
                st.metric("Gross Impressions", fmt_int(resolved.gross_impressions))
            with col2:
                st.metric("Reach %", reach_label)
                st.metric("Reach #", fmt_int(resolved.reach_number))
            with col3:
                st.metric("Avg Frequency", fmt2(resolved.frequency))
                effective = resolved.effective_3plus.effective_3plus_percent if resolved.effective_3plus else None
                st.metric("Effective 3+ Reach", fmt_percent(effective, 2))

            if resolved.derivation_path:
                st.caption(f"Path: {resolved.derivation_path}")

            for warning in resolved.warnings:
                st.warning(warning)
            for error in resolved.errors:
                st.error(error)

            ShowMathPanel().render(resolved)


class ShowMathPanel:
    """Formulas behind a tactic's numbers, with its values substituted."""

    def render(self, resolved: ResolvedTactic):
        with st.expander("🧮 Show the math"):
            for line in self.build_lines(resolved):
                st.markdown(line)

    @staticmethod
    def build_lines(resolved: ResolvedTactic) -> List[str]:
        lines = []
        if resolved.input_cost is not None and resolved.input_cpm is not None:
            lines.append(
                f"Impressions = (Cost / CPM) × 1,000 = ({fmt_currency(resolved.input_cost)} / "
                f"{resolved.input_cpm:,.2f}) × 1,000"
            )
        if resolved.gross_impressions is not None and resolved.grps is not None:
            lines.append(
                f"GRPs = (Impressions / Audience) × 100 = ({fmt_int(resolved.gross_impressions)} / "
                f"{fmt_int(resolved.audience_size)}) × 100 = {fmt2(resolved.grps)}"
            )
        if resolved.reach_percent_estimated and resolved.grps is not None:
            lines.append(
                f"Reach % = 100 × (1 − e^(−k × GRPs / 100)) = {fmt_percent(resolved.reach_percent, 2)}"
            )
        if resolved.grps is not None and resolved.reach_percent and resolved.frequency is not None:
            lines.append(
                f"Frequency = GRPs / Reach % = {fmt2(resolved.grps)} / {fmt2(resolved.reach_percent)} "
                f"= {fmt2(resolved.frequency)}"
            )
        if resolved.reach_number is not None:
            lines.append(
                f"Reach # = Reach % / 100 × Audience = {fmt_int(resolved.reach_number)}"
            )
        if resolved.effective_3plus is not None:
            e = resolved.effective_3plus
            lines.append(
                f"λ = GRPs / 100 = {e.lambda_:.4f}; P(0) = {e.p0:.4f}, P(1) = {e.p1:.4f}, "
                f"P(2) = {e.p2:.4f}; P(3+) = 1 − P(0) − P(1) − P(2) = {e.p3plus:.4f}"
            )
        if not lines:
            lines.append("No calculations were possible with the inputs provided.")
        return lines


class PlanSummaryPanel:
    """Plan-level totals and the sequential-remainder trace."""

    def __init__(self, data_manager: DataManager):
        self.data_manager = data_manager

    def render(self, summary: Optional[PlanSummaryResult], plan_error: Optional[str], selected_count: int):
        st.subheader("📊 Plan Summary")

        if plan_error:
            st.error(f"❌ {plan_error}")
            return
        if summary is None:
            if selected_count < 2:
                st.info("Tick **Include in plan** on two or more tactics to see combined reach.")
            return

        col1, col2, col3, col4 = st.columns(4)
        with col1:
            st.metric("Total GRPs", fmt2(summary.total_grps))
        with col2:
            st.metric("Combined Reach %", fmt_percent(summary.combined_reach_percent, 2))
            st.caption(f"{fmt_int(summary.combined_reach_number)} people")
        with col3:
            st.metric("Combined Avg Frequency", fmt2(summary.combined_avg_frequency))
        with col4:
            st.metric("Effective 3+ Reach", fmt_percent(summary.effective_3plus.effective_3plus_percent, 2))

        st.caption(
            "Combined reach assumes tactics reach the audience independently. Average frequency "
            "and effective 3+ reach are computed on total plan GRPs."
        )

        st.markdown("**Reach de-duplication (sequential remainder)**")
        steps_df = self.data_manager.steps_to_dataframe(summary)
        st.dataframe(
            steps_df.style.format({
                'Reach %': '{:.2f}',
                'Unreached Remainder %': '{:.2f}',
                'Incremental Reach %': '{:.2f}',
                'Running Total %': '{:.2f}',
            }),
            hide_index=True,
            use_container_width=True
        )

        st.plotly_chart(self.build_reach_chart(summary), use_container_width=True)

    @staticmethod
    def build_reach_chart(summary: PlanSummaryResult) -> go.Figure:
        """Incremental reach per tactic with the running combined total."""
        steps = summary.combined_reach_steps
        names = [step.tactic_name for step in steps]

        fig = go.Figure()
        fig.add_trace(go.Bar(
            x=names,
            y=[step.incremental for step in steps],
            name='Incremental Reach %',
            marker_color='lightblue',
            hovertemplate='<b>%{x}</b><br>Incremental: %{y:.2f}%<extra></extra>'
        ))
        fig.add_trace(go.Scatter(
            x=names,
            y=[step.running_total for step in steps],
            name='Running Total %',
            mode='lines+markers',
            marker_color='darkblue',
            hovertemplate='<b>%{x}</b><br>Running total: %{y:.2f}%<extra></extra>'
        ))
        fig.update_layout(
            title="Reach Build-up",
            yaxis=dict(title="Reach %", range=[0, 100]),
            xaxis_tickangle=-45,
            legend=dict(orientation='h', y=-0.3)
        )
        return fig


def display_notifications(notifications: List[Dict[str, Any]]):
    """Show error-handler notifications in the sidebar."""
    if not notifications:
        return
    with st.sidebar:
        st.markdown("### Notifications")
        for notification in notifications:
            text = f"**{notification['title']}**: {notification['message']}"
            if notification.get('action'):
                text += f"\n\n💡 {notification['action']}"
            if notification['type'] == 'warning':
                st.warning(text)
            elif notification['type'] == 'info':
                st.info(text)
            else:
                st.error(text)
