"""
Meal Board - weekly meal reservation board.

Employees mark which daily meal slots (早 / 中 / 晚) they will eat in a
given week. The board reconciles those reservations against a Supabase
table and shows per-day, per-slot totals for kitchen planning.
"""

__version__ = "1.0.0"
