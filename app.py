# Streamlit Web Application

import io
import html
import json
import warnings
import datetime

import pandas as pd
import streamlit as st

from esg_quality_checks import (
    EXPECTED_COLUMNS,
    RECONCILIATION_TOLERANCE,
    SAMPLE_CSV,
    SAMPLE_TEXT,
    HIGH,
    MEDIUM,
    SEVERITIES,
    parse_csv,
    serialize_csv,
    check_table,
    score_from_issues,
    score_label,
    extract_from_text,
    extraction_notes,
    apply_flags_to_df,
    issues_to_frame,
    build_report,
)

warnings.filterwarnings("ignore")

# PAGE CONFIG

st.set_page_config(
    page_title="ESG Data Checker",
    page_icon="🌿",
    layout="wide",
    initial_sidebar_state="expanded",
)


# CUSTOM CSS

st.markdown("""
<style>
@import url('https://fonts.googleapis.com/css2?family=IBM+Plex+Mono:wght@400;600&family=IBM+Plex+Sans:wght@300;400;600&display=swap');

html, body, [class*="css"] { font-family: 'IBM Plex Sans', sans-serif; }
.stApp { background-color: #f6f8f5; color: #1f2a24; }
h1, h2, h3 { font-family: 'IBM Plex Mono', monospace !important; font-weight: 600 !important; }

.app-title { font-family: 'IBM Plex Mono', monospace; font-size: 2rem; font-weight: 600; color: #1f2a24; }
.app-title span { color: #15803d; }
.app-subtitle {
    font-family: 'IBM Plex Mono', monospace; font-size: 0.72rem; color: #94a3b8;
    letter-spacing: 0.12em; text-transform: uppercase; margin-top: 0.25rem;
}

.score-card {
    background: #ffffff; border: 1px solid #e2e8f0; border-radius: 10px;
    padding: 1.25rem 1.5rem; box-shadow: 0 1px 4px rgba(0,0,0,0.06);
}
.score-card.ok   { border-left: 4px solid #10b981; }
.score-card.warn { border-left: 4px solid #f59e0b; }
.score-card.bad  { border-left: 4px solid #ef4444; }
.score-value { font-family: 'IBM Plex Mono', monospace; font-size: 2.4rem; font-weight: 600; line-height: 1; }
.score-label { color: #475569; font-size: 0.85rem; margin-top: 0.4rem; }

.badge { padding: 2px 8px; border-radius: 4px; font-size: 0.7rem; font-family: 'IBM Plex Mono', monospace; font-weight: 600; }
.badge-high   { background: #fee2e2; color: #b91c1c; }
.badge-medium { background: #fef3c7; color: #92400e; }
.badge-low    { background: #e0f2fe; color: #075985; }

.section-header {
    font-family: 'IBM Plex Mono', monospace; font-size: 0.72rem; letter-spacing: 0.15em;
    text-transform: uppercase; color: #94a3b8; border-bottom: 1px solid #e2e8f0;
    padding-bottom: 0.5rem; margin: 1.5rem 0 1rem 0;
}
.issue-row {
    background: #ffffff; border: 1px solid #e2e8f0; border-radius: 8px;
    padding: 0.6rem 1rem; margin-bottom: 0.4rem; font-size: 0.875rem;
}
.muted { color: #94a3b8; font-family: 'IBM Plex Mono', monospace; font-size: 0.8rem; }
</style>
""", unsafe_allow_html=True)


# SESSION STATE
# The loaded table is kept under a single key and handed to the checks
# explicitly; loading replaces it, clearing drops it.

def _reset_results():
    st.session_state["csv_issues"] = None
    st.session_state["run_ts"] = None


def _load_table(text):
    st.session_state["table"] = parse_csv(text)
    _reset_results()


def _on_upload():
    uploaded = st.session_state.get("csv_upload")
    if uploaded is None:
        return
    _load_table(uploaded.getvalue().decode("utf-8-sig", errors="replace"))


def _clear_csv():
    st.session_state["table"] = None
    _reset_results()


def _load_sample_text():
    st.session_state["report_text"] = SAMPLE_TEXT
    st.session_state["metrics"] = None


def _clear_text():
    st.session_state["report_text"] = ""
    st.session_state["metrics"] = None


for key, default in [("table", None), ("csv_issues", None), ("run_ts", None),
                     ("report_text", ""), ("metrics", None)]:
    st.session_state.setdefault(key, default)


# RENDER HELPERS

def render_issues(issues):
    if not issues:
        st.markdown("<span class='muted'>No issues found in this dataset.</span>", unsafe_allow_html=True)
        return
    for iss in issues:
        st.markdown(f"""
        <div class="issue-row">
            <span class="badge badge-{iss.severity}">{iss.severity.upper()}</span>&nbsp;&nbsp;{html.escape(iss.label())}
        </div>""", unsafe_allow_html=True)


def render_score(issues):
    if issues is None:
        score_text, label, card = "–", "Upload data and run checks", "ok"
    else:
        score = score_from_issues(issues)
        score_text, label = str(score), score_label(score, len(issues))
        card = "ok" if score >= 85 else ("warn" if score >= 70 else "bad")
    st.markdown(f"""<div class="score-card {card}">
        <div class="score-value">{score_text}</div>
        <div class="score-label">{label}</div>
    </div>""", unsafe_allow_html=True)


def color_severity(val):
    if val == HIGH:   return "background-color:#fee2e2;color:#b91c1c"
    if val == MEDIUM: return "background-color:#fef3c7;color:#92400e"
    if val:           return "background-color:#e0f2fe;color:#075985"
    return ""


# STREAMLIT UI

st.markdown('<div class="app-title">ESG DATA <span>CHECKER</span></div>', unsafe_allow_html=True)
st.markdown('<div class="app-subtitle">Sustainability disclosures · CSV checks & report text extraction</div>',
            unsafe_allow_html=True)
st.markdown("<br>", unsafe_allow_html=True)

# SIDEBAR
with st.sidebar:
    st.markdown("### ⚙️ Configuration")
    tolerance = st.slider(
        "Scope reconciliation tolerance (%)", 1, 50, int(RECONCILIATION_TOLERANCE * 100), 1,
        help="Maximum allowed gap between total emissions and the Scope 1–3 sum, as % of total",
    ) / 100.0

    st.markdown("---")
    st.markdown('<div class="section-header">Expected columns</div>', unsafe_allow_html=True)
    st.markdown(f"<div class='muted'>{', '.join(EXPECTED_COLUMNS)}</div>", unsafe_allow_html=True)

tab_csv, tab_text = st.tabs(["📊 Structured data (CSV)", "📝 Report text"])

# CSV TAB
with tab_csv:
    st.file_uploader("Upload a CSV file", type=["csv", "txt"], key="csv_upload", on_change=_on_upload)

    c1, c2, c3 = st.columns(3)
    c1.button("Load sample data", on_click=_load_table, args=(SAMPLE_CSV,))
    run_clicked = c2.button("▶  Run checks", type="primary")
    c3.button("Clear", on_click=_clear_csv)

    table = st.session_state["table"]

    if run_clicked:
        if table is None or table.empty:
            st.warning("Please load a CSV file first.")
        else:
            st.session_state["csv_issues"] = check_table(table, tolerance)
            st.session_state["run_ts"] = datetime.datetime.now().isoformat()

    issues = st.session_state["csv_issues"]

    col_score, col_issues = st.columns([1, 2])
    with col_score:
        render_score(issues)
        if issues is not None:
            counts = " · ".join(f"{s}: {sum(1 for i in issues if i.severity == s)}" for s in SEVERITIES)
            st.markdown(f"<div class='muted'>{counts}</div>", unsafe_allow_html=True)
    with col_issues:
        st.markdown('<div class="section-header">Issues</div>', unsafe_allow_html=True)
        if issues is None:
            st.markdown("<span class='muted'>No issues yet</span>", unsafe_allow_html=True)
        else:
            render_issues(issues)

    if table is not None and table.headers:
        st.markdown('<div class="section-header">Loaded data</div>', unsafe_allow_html=True)
        st.markdown(f"<div class='muted'>{len(table.rows):,} rows · {len(table.headers)} columns</div>",
                    unsafe_allow_html=True)
        st.download_button(
            "💾 Download Loaded Table",
            data=serialize_csv(table),
            file_name="esg_loaded.csv",
            mime="text/csv",
        )

        df_flagged = apply_flags_to_df(table, issues or [])
        if issues is None:
            st.dataframe(df_flagged.iloc[:, :len(table.headers)], use_container_width=True, height=300)
        else:
            styled = df_flagged.style.map(color_severity, subset=["flag_severity"])
            st.dataframe(styled, use_container_width=True, height=300)

            if issues:
                with st.expander("Issue table"):
                    st.dataframe(issues_to_frame(issues), use_container_width=True)

            # DOWNLOADS
            st.markdown('<div class="section-header">Export results</div>', unsafe_allow_html=True)
            d1, d2, d3 = st.columns(3)
            with d1:
                excel_buf = io.BytesIO()
                df_flagged.to_excel(excel_buf, index=False)
                excel_buf.seek(0)
                st.download_button(
                    "📥 Download Flagged Excel",
                    data=excel_buf,
                    file_name="esg_flagged.xlsx",
                    mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
                )
            with d2:
                st.download_button(
                    "📄 Download Flagged CSV",
                    data=df_flagged.to_csv(index=False),
                    file_name="esg_flagged.csv",
                    mime="text/csv",
                )
            with d3:
                report = build_report(table, issues, st.session_state["metrics"])
                report["run_timestamp"] = st.session_state["run_ts"]
                st.download_button(
                    "📋 Download JSON Report",
                    data=json.dumps(report, indent=2, default=str),
                    file_name="esg_quality_report.json",
                    mime="application/json",
                )

# TEXT TAB
with tab_text:
    st.text_area("Paste report text", key="report_text", height=220)

    t1, t2, t3 = st.columns(3)
    extract_clicked = t1.button("Extract metrics", type="primary")
    t2.button("Load sample text", on_click=_load_sample_text)
    t3.button("Clear text", on_click=_clear_text)

    text_status = None
    if extract_clicked:
        text = st.session_state["report_text"] or ""
        if not text.strip():
            st.session_state["metrics"] = None
            text_status = "Paste some report text first."
        else:
            st.session_state["metrics"] = extract_from_text(text)

    metrics = st.session_state["metrics"]

    st.markdown('<div class="section-header">Extracted metrics</div>', unsafe_allow_html=True)
    if text_status:
        st.info(text_status)
        st.markdown("<span class='muted'>No text analysed yet.</span>", unsafe_allow_html=True)
    elif metrics is None:
        st.markdown("<span class='muted'>Nothing extracted yet</span>", unsafe_allow_html=True)
    elif not metrics:
        st.markdown("<span class='muted'>Nothing extracted yet. Try including numbers for scopes, "
                    "total emissions or gender balance.</span>", unsafe_allow_html=True)
        st.caption(extraction_notes(metrics))
    else:
        st.dataframe(
            pd.DataFrame({"metric": list(metrics), "value": list(metrics.values())}),
            use_container_width=True, hide_index=True,
        )
        st.caption(extraction_notes(metrics))
