"""
Text parsing for PDCA Planner

Rule-based extraction of structured goals from chat turns.
"""

from .goal_parser import (
    GoalExtractor,
    extract_goal_from_text,
    extract_title,
    extract_description,
    extract_level,
    extract_dates,
    extract_metrics,
    extract_priority,
    normalize_date,
)

__all__ = [
    'GoalExtractor',
    'extract_goal_from_text',
    'extract_title',
    'extract_description',
    'extract_level',
    'extract_dates',
    'extract_metrics',
    'extract_priority',
    'normalize_date',
]
