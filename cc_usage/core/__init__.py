"""
Core modules for cc-usage.

This package contains cost resolution, deduplication, pricing and the
daily, session, monthly and 5-hour window aggregations.
"""
