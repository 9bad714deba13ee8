"""
Judging Tabulator

Score aggregation, ranking and live synchronization for juried competitions.
"""

__version__ = "0.1.0"
