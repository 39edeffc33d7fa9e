"""
Finance Tracker - Source Package

A personal debt and income tracker with a live dashboard, receipt
attachments and a monthly income goal.

DESIGN PRINCIPLES:
1. The store is the source of truth; the UI only draws committed snapshots
2. Aggregation is pure and recomputed from scratch on every change
3. Fail visibly: failed writes become user-facing notifications
4. Every write is auditable
5. Storage and blob backends are swappable
"""

__version__ = "1.0.0"
__author__ = "Finance Tracker Team"
