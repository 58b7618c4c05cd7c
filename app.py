"""
Content Decay Analyzer - Main Streamlit Application

Compares two Search Console windows per page, diagnoses declining content
and sizes the revival opportunity for each URL.
"""
import logging
import requests
import streamlit as st
import pandas as pd
from datetime import datetime
import sys
import os
from urllib.parse import quote

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from config.settings import (
    BATCH_SITE_LIMIT,
    DATE_RANGE_OPTIONS,
    DEFAULT_MIN_IMPRESSIONS,
    IDEAL_CTR,
    CLIFF_THRESHOLD_PCT,
    SEVERITY_ICONS
)
from auth.google_auth import GoogleAuthManager
from auth.credentials import CredentialManager
from connectors.gsc_connector import GSCConnector
from connectors.errors import GSCError, NoDataError, RateLimited, ReauthenticationRequired
from analysis.models import DECAY_CLASS_LABELS, DecayConfig
from analysis.runner import DecayAnalysisRunner
from utils.cache import AnalysisCache
from utils.export import export_to_csv
from utils.helpers import format_change, format_compact, format_number, format_percentage, format_site_url
from visualization.charts import ChartBuilder
from visualization.page_table import PageTableViewState, build_page_table, decaying_pages

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Page configuration
st.set_page_config(
    page_title="Content Decay Analyzer",
    page_icon="📉",
    layout="wide",
    initial_sidebar_state="expanded"
)

st.markdown("""
<style>
    .main-header {
        font-size: 2.2rem;
        font-weight: bold;
        text-align: center;
        color: #1f77b4;
        margin-bottom: 1rem;
        padding: 1rem;
    }
    .recommendation {
        background-color: #e7f3ff;
        padding: 0.6rem 1rem;
        border-radius: 0.5rem;
        margin: 0.3rem 0;
    }
</style>
""", unsafe_allow_html=True)


def init_session_state():
    """Initialize session state variables"""
    defaults = {
        'analysis_result': None,
        'analysis_cache': AnalysisCache(),
        'page_view_state': PageTableViewState()
    }
    for key, value in defaults.items():
        if key not in st.session_state:
            st.session_state[key] = value

    st.session_state['analysis_cache'].purge_older_than()


def show_fetch_error(error: GSCError):
    """Turn a fetch failure into a user-actionable message"""
    if isinstance(error, ReauthenticationRequired):
        CredentialManager.clear_credentials()
        st.error(f"🔐 {error}")
        if st.button("Sign in again"):
            st.rerun()
    elif isinstance(error, RateLimited):
        st.warning(f"⏳ {error}")
    elif isinstance(error, NoDataError):
        st.info(f"📭 {error}")
    else:
        st.error(f"❌ {error}")


def render_sidebar(connector: GSCConnector):
    """Render sidebar with configuration options"""
    with st.sidebar:
        st.header("⚙️ Configuration")

        user_info = st.session_state.get(CredentialManager.USER_INFO_KEY)
        if user_info:
            st.caption(f"Signed in as **{user_info.get('name') or user_info.get('email', '')}**")

        if st.button("🚪 Logout", use_container_width=True):
            CredentialManager.clear_credentials()
            st.session_state['analysis_cache'].clear()
            st.session_state['analysis_result'] = None
            st.rerun()

        st.markdown("---")

        # Cache sites in session state to avoid repeated API calls
        if 'available_sites' not in st.session_state:
            try:
                st.session_state['available_sites'] = connector.get_verified_sites()
            except GSCError as e:
                show_fetch_error(e)
                st.session_state['available_sites'] = []

        sites = [site['site_url'] for site in st.session_state['available_sites']]

        if sites:
            selected_site = st.selectbox("🔍 GSC Property", sites, format_func=format_site_url)
        else:
            st.warning("No Search Console sites found")
            selected_site = None

        st.markdown("---")
        st.subheader("📅 Comparison Window")
        window_label = st.selectbox("Compare the last", list(DATE_RANGE_OPTIONS.keys()), index=3)
        window_days = DATE_RANGE_OPTIONS[window_label]
        st.caption(f"…against the {window_days} days before it")

        include_recent = st.checkbox(
            "Detect last-week cliffs",
            value=True,
            help="Fetch the trailing 7 days to flag sudden traffic drops"
        )

        st.markdown("---")
        st.subheader("🎯 Diagnosis Settings")
        min_impressions = st.number_input(
            "Minimum impressions",
            min_value=0,
            value=DEFAULT_MIN_IMPRESSIONS,
            step=10
        )
        ideal_ctr = st.slider(
            "Achievable CTR at top rank",
            min_value=0.05,
            max_value=0.50,
            value=IDEAL_CTR,
            step=0.01,
            help="Used to size the revival opportunity"
        )
        cliff_threshold = st.slider(
            "Cliff threshold (%)",
            min_value=-90,
            max_value=-10,
            value=int(CLIFF_THRESHOLD_PCT),
            step=5
        )

        brand_input = st.text_area(
            "Brand keywords (one per line)",
            help="Used to split a page's queries into branded and generic"
        )

        st.markdown("---")
        force_refresh = st.checkbox("Ignore cached results", value=False)
        analyze_clicked = st.button("🚀 Analyze Content Decay", type="primary", use_container_width=True)
        refresh_all_clicked = st.button(
            f"🔄 Refresh first {BATCH_SITE_LIMIT} properties",
            use_container_width=True,
            disabled=not sites
        )

        config = DecayConfig(
            ideal_ctr=ideal_ctr,
            cliff_threshold_pct=float(cliff_threshold),
            min_impressions=int(min_impressions),
            brand_keywords=tuple(t.strip() for t in brand_input.split('\n') if t.strip())
        )

        return {
            'selected_site': selected_site,
            'window_days': window_days,
            'include_recent': include_recent,
            'force_refresh': force_refresh,
            'decay_config': config,
            'analyze_clicked': analyze_clicked,
            'refresh_all_clicked': refresh_all_clicked,
            'sites': sites
        }


def get_runner(connector: GSCConnector, config: DecayConfig) -> DecayAnalysisRunner:
    return DecayAnalysisRunner(
        connector,
        cache=st.session_state['analysis_cache'],
        config=config
    )


def render_batch_refresh(runner: DecayAnalysisRunner, sites):
    """Re-analyze several properties and report critical pages per site"""
    try:
        with st.spinner(f"Refreshing up to {BATCH_SITE_LIMIT} properties..."):
            batch = runner.analyze_sites(sites, limit=BATCH_SITE_LIMIT)
    except ReauthenticationRequired as e:
        show_fetch_error(e)
        return

    st.success(f"Refreshed {len(batch['results'])} properties · {batch['total_critical']} critical pages")
    st.dataframe(
        pd.DataFrame([
            {
                'property': format_site_url(site_url),
                'critical': result.summary.critical_count,
                'warning': result.summary.warning_count,
                'health_score': result.summary.health_score
            }
            for site_url, result in batch['results'].items()
        ]),
        use_container_width=True,
        hide_index=True
    )
    for site_url, error in batch['errors'].items():
        st.warning(f"{format_site_url(site_url)}: {error}")


def render_site_totals(connector: GSCConnector, result):
    """Property-wide totals for the current window"""
    start_date, end_date = result.periods['current']
    try:
        totals = connector.fetch_site_totals(result.site_url, start_date, end_date)
    except GSCError as e:
        logger.warning("Site totals unavailable for %s: %s", result.site_url, e)
        return

    if not totals:
        return

    cols = st.columns(4)
    cols[0].metric("Site clicks", format_compact(totals['clicks']))
    cols[1].metric("Site impressions", format_compact(totals['impressions']))
    cols[2].metric("Site CTR", format_percentage(totals['ctr']))
    cols[3].metric("Avg. position", f"{totals['position']:.1f}")


def render_overview_tab(connector: GSCConnector, result):
    """Render site health overview"""
    summary = result.summary
    charts = ChartBuilder()

    render_site_totals(connector, result)

    cols = st.columns(5)
    cols[0].metric("Pages analyzed", format_number(summary.total_pages))
    cols[1].metric(f"{SEVERITY_ICONS['critical']} Critical", summary.critical_count)
    cols[2].metric(f"{SEVERITY_ICONS['warning']} Warning", summary.warning_count)
    cols[3].metric(f"{SEVERITY_ICONS['monitoring']} Monitoring", summary.monitoring_count)
    cols[4].metric(f"{SEVERITY_ICONS['healthy']} Healthy", summary.healthy_count)

    col1, col2 = st.columns(2)
    with col1:
        st.plotly_chart(charts.create_health_gauge(summary), use_container_width=True)
    with col2:
        st.plotly_chart(charts.create_severity_breakdown(summary), use_container_width=True)

    col1, col2 = st.columns(2)
    with col1:
        st.plotly_chart(charts.create_decay_class_chart(result.pages), use_container_width=True)
    with col2:
        st.plotly_chart(charts.create_opportunity_scatter(result.pages), use_container_width=True)

    st.caption(
        f"Average opportunity: {summary.avg_score:,.1f} clicks · "
        f"Average decline score: {summary.avg_decline_score:,.1f}"
    )


def render_pages_tab(result):
    """Render the decaying pages table and page detail"""
    pages = decaying_pages(result.pages)

    if not pages:
        st.success("🎉 No significant content decay detected! Your content is performing well.")
        return

    view_state = st.session_state['page_view_state']

    col1, col2, col3 = st.columns([2, 2, 1])
    with col1:
        metric = st.selectbox(
            "Metric",
            ['clicks', 'impressions', 'position'],
            index=['clicks', 'impressions', 'position'].index(view_state.metric),
            format_func=lambda m: 'Position' if m == 'position' else m.capitalize()
        )
    with col2:
        sort_column = st.selectbox(
            "Sort by",
            ['diff', 'current', 'previous'],
            index=['diff', 'current', 'previous'].index(view_state.sort_column),
            format_func=lambda c: {'diff': 'Change', 'current': 'Current', 'previous': 'Previous'}[c]
        )
    with col3:
        if st.button("↕️ Reverse"):
            view_state = view_state.toggle_sort(view_state.sort_column)

    view_state = view_state.with_metric(metric)
    if sort_column != view_state.sort_column:
        view_state = view_state.toggle_sort(sort_column)
    st.session_state['page_view_state'] = view_state

    st.markdown(f"**{len(pages)} pages need attention**")
    table = build_page_table(pages, view_state)
    st.dataframe(table.drop(columns=['url']), use_container_width=True, hide_index=True)

    selected = st.selectbox("Page details", table['url'].tolist(), format_func=lambda u: u)
    page = next((p for p in pages if p.page_url == selected), None)
    if page:
        render_page_detail(result, page)


def render_page_detail(result, page):
    """Metrics, recommendations and drill-down for one page"""
    diagnosis = page.diagnosis
    changes = diagnosis.changes

    st.markdown(
        f"### {SEVERITY_ICONS[diagnosis.severity]} "
        f"{DECAY_CLASS_LABELS[diagnosis.decay_class]} · {diagnosis.severity.upper()}"
    )
    st.caption(page.page_url)

    cols = st.columns(6)
    cols[0].metric("Clicks Change", format_change(changes.clicks_pct, is_percentage=True))
    cols[1].metric("Impressions Change", format_change(changes.impressions_pct, is_percentage=True))
    cols[2].metric("CTR Change", format_change(changes.ctr_pct, is_percentage=True))
    cols[3].metric("Position Change", format_change(changes.position_delta))
    cols[4].metric("Opportunity", format_compact(diagnosis.score))
    cols[5].metric("Current CTR", format_percentage(page.comparison.current.ctr))

    if diagnosis.velocity_change_pct is not None:
        st.caption(f"Last-week click velocity vs month: {format_change(diagnosis.velocity_change_pct, True)}")

    st.markdown("#### 📋 Recommendations")
    for recommendation in diagnosis.recommendations:
        st.markdown(f'<div class="recommendation">{recommendation}</div>', unsafe_allow_html=True)

    gsc_url = (
        "https://search.google.com/search-console/performance/search-analytics"
        f"?resource_id={quote(result.site_url, safe='')}&page=!{quote(page.page_url, safe='')}"
    )
    st.markdown(f"[Open page]({page.page_url}) · [Open in Search Console]({gsc_url})")


def render_drilldown(runner: DecayAnalysisRunner, result):
    """Query and daily trend drill-down for a chosen page"""
    urls = [p.page_url for p in result.pages]
    if not urls:
        return

    page_url = st.selectbox("Page", urls, key='drilldown_page')
    if not st.button("🔬 Load page drill-down"):
        return

    charts = ChartBuilder()
    try:
        with st.spinner("Fetching page data..."):
            trend = runner.page_daily_trend(result.site_url, page_url)
            breakdown = runner.page_query_breakdown(result.site_url, page_url)
    except GSCError as e:
        show_fetch_error(e)
        return

    st.plotly_chart(charts.create_page_trend(trend['daily']), use_container_width=True)

    cols = st.columns(3)
    cols[0].metric("Trend", trend['trend'].replace('_', ' ').title())
    velocity = trend['velocity']
    if velocity:
        cols[1].metric("Weekly decay rate", format_change(velocity['weekly_decay_rate'], True))
        cols[2].metric("Daily click slope", f"{velocity['daily_click_slope']:+.2f}")

    for pattern in trend['patterns']:
        label = 'Algorithm update' if pattern['type'] == 'algorithm_update' else 'Sudden drop'
        st.warning(f"⚠️ {label} on {', '.join(pattern['dates'])}")

    split = breakdown['split']
    if runner.config.brand_keywords:
        st.markdown(
            f"**Branded clicks:** {split['branded']['click_share_pct']}% · "
            f"**Generic clicks:** {split['generic']['click_share_pct']}%"
        )
    st.dataframe(breakdown['queries'], use_container_width=True, hide_index=True)


def render_new_pages_tab(result):
    """Pages without a baseline in the previous window"""
    if not result.new_pages:
        st.info("No new pages in this window")
        return

    st.markdown(f"**{len(result.new_pages)} new pages** (no data in the previous window, not scored)")
    st.dataframe(
        pd.DataFrame([
            {'page': c.page_url, **c.current.to_dict()} for c in result.new_pages
        ]),
        use_container_width=True,
        hide_index=True
    )


def render_export_tab(result):
    """CSV download of all diagnosed pages"""
    csv_text = export_to_csv(result.pages)
    file_name = (
        f"content-decay-{format_site_url(result.site_url)}-"
        f"{datetime.now().strftime('%Y-%m-%d')}.csv"
    )
    st.download_button(
        "📥 Download CSV",
        data=csv_text,
        file_name=file_name,
        mime="text/csv"
    )

    periods = result.periods
    if periods:
        st.caption(
            f"Current: {periods['current'][0]} → {periods['current'][1]} · "
            f"Previous: {periods['previous'][0]} → {periods['previous'][1]}"
        )


def main():
    """Main application entry point"""
    init_session_state()

    st.markdown('<div class="main-header">📉 Content Decay Analyzer</div>', unsafe_allow_html=True)
    st.markdown(
        "<p style='text-align: center; color: #666;'>Find declining pages in Google Search Console and size their revival opportunity</p>",
        unsafe_allow_html=True
    )

    auth_manager = GoogleAuthManager()
    credentials = auth_manager.render_auth_ui()

    if not credentials:
        return

    if CredentialManager.USER_INFO_KEY not in st.session_state:
        try:
            st.session_state[CredentialManager.USER_INFO_KEY] = auth_manager.get_user_info(credentials)
        except requests.RequestException as e:
            logger.warning("Could not load user profile: %s", e)
            st.session_state[CredentialManager.USER_INFO_KEY] = {}

    connector = GSCConnector(credentials)
    config = render_sidebar(connector)
    runner = get_runner(connector, config['decay_config'])

    if config['refresh_all_clicked']:
        render_batch_refresh(runner, config['sites'])

    if config['analyze_clicked']:
        if not config['selected_site']:
            st.error("Please select a GSC property")
            return

        try:
            with st.spinner("Fetching Search Console data and diagnosing pages..."):
                result = runner.analyze_site(
                    config['selected_site'],
                    current_days=config['window_days'],
                    previous_days=config['window_days'],
                    include_recent=config['include_recent'],
                    force_refresh=config['force_refresh']
                )
        except GSCError as e:
            show_fetch_error(e)
            return

        st.session_state['analysis_result'] = result
        if result.cached:
            st.info(f"Showing cached analysis from {result.cache_age_minutes} minutes ago")
        else:
            st.success("✅ Analysis complete!")

    result = st.session_state.get('analysis_result')
    if result:
        tabs = st.tabs([
            "📊 Overview",
            "📉 Decaying Pages",
            "🔬 Page Drill-down",
            "🆕 New Pages",
            "📋 Export"
        ])

        with tabs[0]:
            render_overview_tab(connector, result)

        with tabs[1]:
            render_pages_tab(result)

        with tabs[2]:
            render_drilldown(runner, result)

        with tabs[3]:
            render_new_pages_tab(result)

        with tabs[4]:
            render_export_tab(result)

    else:
        st.info("👈 Choose a property in the sidebar and click 'Analyze Content Decay' to begin")


if __name__ == "__main__":
    main()
