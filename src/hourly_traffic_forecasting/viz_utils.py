from __future__ import annotations

from pathlib import Path

import pandas as pd

import plotly.graph_objects as go


def plot_forecast(
    history: pd.DataFrame,
    forecast: pd.DataFrame,
    title: str = 'Hourly traffic forecast',
    history_hours: int | None = 24 * 28,
    actual: pd.DataFrame | None = None,
) -> go.Figure:
    """Recent history, the forecast line and its interval band on one time axis."""
    hist = history['traffic']
    if history_hours is not None:
        hist = hist.iloc[-history_hours:]

    fig = go.Figure()
    fig.add_trace(go.Scatter(x=hist.index, y=hist.values, mode='lines', name='history', line=dict(width=1)))

    if actual is not None:
        fig.add_trace(go.Scatter(x=actual.index, y=actual['traffic'].values, mode='lines', name='actual', line=dict(width=1)))

    if forecast[['lower', 'upper']].notna().any().all():
        fig.add_trace(go.Scatter(
            x=list(forecast.index) + list(forecast.index[::-1]),
            y=list(forecast['upper']) + list(forecast['lower'][::-1]),
            fill='toself',
            fillcolor='rgba(99,110,250,0.18)',
            line=dict(width=0),
            hoverinfo='skip',
            name='interval',
        ))

    fig.add_trace(go.Scatter(x=forecast.index, y=forecast['forecast'].values, mode='lines', name='forecast', line=dict(width=2)))

    fig.update_layout(
        title=title,
        xaxis_title='timestamp',
        yaxis_title='vehicles / hour',
        template='plotly_white',
        legend=dict(orientation='h', yanchor='bottom', y=1.02, xanchor='left', x=0),
    )
    return fig


def plot_cleaning(series: pd.DataFrame, outliers: pd.DataFrame, title: str = 'Cleaned traffic with STL outliers') -> go.Figure:
    fig = go.Figure()
    fig.add_trace(go.Scatter(x=series.index, y=series['traffic'].values, mode='lines', name='traffic', line=dict(width=1)))
    if len(outliers):
        fig.add_trace(go.Scatter(
            x=outliers.index,
            y=outliers['traffic'].values,
            mode='markers',
            name='outlier (3×IQR remainder)',
            marker=dict(color='crimson', size=7, symbol='x'),
        ))
    fig.update_layout(title=title, xaxis_title='timestamp', yaxis_title='vehicles / hour', template='plotly_white')
    return fig


def save_plotly(fig: go.Figure, html_out: Path, png_out: Path | None = None, width: int = 1500, height: int = 520) -> None:
    html_out.parent.mkdir(parents=True, exist_ok=True)
    fig.write_html(
        html_out,
        include_plotlyjs='cdn',
        config={'responsive': True, 'displayModeBar': False},
    )

    if png_out is not None:
        png_out.parent.mkdir(parents=True, exist_ok=True)
        # Requires `kaleido`
        fig.write_image(png_out, width=width, height=height, scale=2)
