"""
PDCA Planner

Goal planning assistant built around a Plan-Do-Check-Act cycle: goals are
stored in a relational database, discussed with an LLM-backed chat
assistant, and proposed goals are extracted from each chat turn.
"""

__version__ = "0.3.0"
