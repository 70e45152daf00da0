"""
Weekly Ledger - Source Package

A personal expense tracker that groups spending into contiguous,
non-overlapping accounting weeks that can be closed by hand or on a
schedule.

DESIGN PRINCIPLES:
1. A closed week never changes again
2. The current week is the only week accepting new spending
3. Fail loudly when persisted state disagrees with what we wrote
4. Every state change is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Weekly Ledger Team"
