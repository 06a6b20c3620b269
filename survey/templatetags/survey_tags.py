"""Custom template filters for the survey app."""

from __future__ import annotations

from typing import Any, Optional
from urllib.parse import urlencode

from django import template

from ..services.scoring import EMPTY_ANSWER, round_half_up

register = template.Library()


@register.filter
def get(value, key):
    """Return the value of ``value[key]`` for dictionaries in templates.

    Usage::

        {{ mydict|get:var }}

    The Django template engine cannot index a dictionary with a variable
    key, which the seller detail page needs for its per-section lookups.
    If ``value`` is not dictionary-like or the key is missing, an empty
    string is returned.
    """
    if hasattr(value, 'get'):
        return value.get(key, '')
    return ''


@register.filter
def score_percent(score: Optional[float], max_score: Any = 5) -> int:
    """Convert an average score into a 0-100 width for progress bars."""
    try:
        maximum = float(max_score)
    except (TypeError, ValueError):
        return 0
    if score is None or maximum <= 0:
        return 0
    return max(0, min(100, round(float(score) / maximum * 100)))


@register.filter
def score_display(score: Optional[float]) -> str:
    """Render a score with one decimal, or a dash when nothing was answered."""
    if score is None:
        return EMPTY_ANSWER
    if float(score).is_integer():
        return str(int(score))
    return f'{round_half_up(float(score), 1):.1f}'


@register.simple_tag
def query_string(params) -> str:
    """Encode a mapping of query parameters, used by the listing pagination."""
    if not params:
        return ''
    return urlencode(params)
