"""Minimal price line chart drawn with ECharts through NiceGUI."""

from typing import Sequence

from nicegui import ui

LINE_COLOR = '#4B34D1'
FILL_COLOR = 'rgba(75, 52, 209, 0.2)'


def sparkline_options(history: Sequence[float], currency: str) -> dict:
    """ECharts options for an axis-less, legend-less filled line."""
    return {
        'animation': False,
        'grid': {'left': 0, 'right': 0, 'top': 4, 'bottom': 4},
        'xAxis': {
            'type': 'category',
            'show': False,
            'boundaryGap': False,
            'data': [i + 1 for i in range(len(history))],
        },
        'yAxis': {'type': 'value', 'show': False, 'scale': True},
        'legend': {'show': False},
        'tooltip': {
            'trigger': 'axis',
            ':valueFormatter': f'(value) => value.toFixed(2) + " {currency.upper()}"',
        },
        'series': [{
            'type': 'line',
            'data': list(history),
            'smooth': 0.3,
            'showSymbol': False,
            'lineStyle': {'color': LINE_COLOR},
            'areaStyle': {'color': FILL_COLOR},
        }],
    }


def draw_sparkline(history: Sequence[float], currency: str):
    return ui.echart(sparkline_options(history, currency)).classes('watchChart')
