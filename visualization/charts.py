"""
Interactive Visualization Module with Plotly
"""
import pandas as pd
import plotly.express as px
import plotly.graph_objects as go
from typing import List

from analysis.models import DECAY_CLASS_LABELS, DECAY_CLASSES, SEVERITIES, DiagnosedPage, SiteSummary
from config.settings import COLORS


class ChartBuilder:
    """
    Creates visualizations for content decay results

    Chart types:
    - Site health gauge
    - Severity breakdown donut
    - Decay class distribution
    - Opportunity vs click change scatter
    - Daily click trend for a single page
    """

    def __init__(self):
        self.colors = COLORS

    def _health_color(self, health_score: int) -> str:
        if health_score >= 70:
            return self.colors['healthy']
        if health_score >= 40:
            return self.colors['warning']
        return self.colors['critical']

    def create_health_gauge(self, summary: SiteSummary, title: str = 'Site Health') -> go.Figure:
        """Gauge of the share of pages that are healthy or only being monitored"""
        fig = go.Figure(go.Indicator(
            mode='gauge+number',
            value=summary.health_score,
            number={'suffix': '%'},
            title={'text': title},
            gauge={
                'axis': {'range': [0, 100]},
                'bar': {'color': self._health_color(summary.health_score)}
            }
        ))
        fig.update_layout(height=260, margin=dict(t=60, b=20, l=30, r=30))
        return fig

    def create_severity_breakdown(
        self,
        summary: SiteSummary,
        title: str = 'Pages by Severity'
    ) -> go.Figure:
        """Donut chart of page counts per severity"""
        counts = [
            summary.critical_count,
            summary.warning_count,
            summary.monitoring_count,
            summary.healthy_count
        ]

        fig = go.Figure(go.Pie(
            labels=[s.capitalize() for s in SEVERITIES],
            values=counts,
            hole=0.55,
            marker=dict(colors=[self.colors[s] for s in SEVERITIES]),
            sort=False,
            hovertemplate='%{label}: %{value} pages<extra></extra>'
        ))

        fig.update_layout(title=title, template='plotly_white', showlegend=True)
        return fig

    def create_decay_class_chart(
        self,
        pages: List[DiagnosedPage],
        title: str = 'Decay Diagnosis Distribution'
    ) -> go.Figure:
        """Horizontal bar of pages per decay class"""
        counts = {decay_class: 0 for decay_class in DECAY_CLASSES}
        for page in pages:
            counts[page.diagnosis.decay_class] += 1

        fig = go.Figure(go.Bar(
            x=list(counts.values()),
            y=[DECAY_CLASS_LABELS[c] for c in counts],
            orientation='h',
            marker_color=self.colors['primary'],
            hovertemplate='%{y}: %{x} pages<extra></extra>'
        ))

        fig.update_layout(
            title=title,
            xaxis_title='Pages',
            yaxis=dict(autorange='reversed'),
            template='plotly_white'
        )
        return fig

    def create_opportunity_scatter(
        self,
        pages: List[DiagnosedPage],
        title: str = 'Revival Opportunity vs Click Change'
    ) -> go.Figure:
        """Each page plotted by click change and opportunity, colored by severity"""
        df = pd.DataFrame([
            {
                'page': page.page_url,
                'clicks_change_pct': page.diagnosis.changes.clicks_pct,
                'opportunity': page.diagnosis.score,
                'severity': page.diagnosis.severity,
                'impressions': page.comparison.current.impressions
            }
            for page in pages
        ], columns=['page', 'clicks_change_pct', 'opportunity', 'severity', 'impressions'])

        fig = px.scatter(
            df,
            x='clicks_change_pct',
            y='opportunity',
            color='severity',
            size='impressions' if not df.empty else None,
            hover_name='page',
            color_discrete_map={s: self.colors[s] for s in SEVERITIES},
            category_orders={'severity': list(SEVERITIES)},
            title=title
        )

        fig.update_layout(
            xaxis_title='Clicks Change (%)',
            yaxis_title='Opportunity (clicks)',
            template='plotly_white'
        )
        return fig

    def create_page_trend(
        self,
        daily: pd.DataFrame,
        date_col: str = 'date',
        metric_col: str = 'clicks',
        title: str = 'Daily Clicks'
    ) -> go.Figure:
        """Daily series with its 7-day moving average"""
        fig = go.Figure()

        if daily.empty:
            fig.update_layout(title=title, template='plotly_white')
            return fig

        df = daily.sort_values(date_col)

        fig.add_trace(go.Scatter(
            x=df[date_col],
            y=df[metric_col],
            mode='lines',
            name=metric_col.capitalize(),
            line=dict(color=self.colors['neutral'], width=1),
            hovertemplate=f'{metric_col}: %{{y:,.0f}}<br>Date: %{{x}}<extra></extra>'
        ))

        fig.add_trace(go.Scatter(
            x=df[date_col],
            y=df[metric_col].rolling(7, min_periods=1).mean(),
            mode='lines',
            name='7-day average',
            line=dict(color=self.colors['primary'], width=3)
        ))

        fig.update_layout(
            title=title,
            xaxis_title='Date',
            yaxis_title=metric_col.capitalize(),
            hovermode='x unified',
            legend=dict(orientation='h', yanchor='bottom', y=1.02, xanchor='right', x=1),
            template='plotly_white'
        )
        return fig
