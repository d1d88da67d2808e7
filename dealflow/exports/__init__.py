"""Exports: CSV writers and the Markdown deal report.

- writers.py: CSV emitters with fixed column schemas
- reports.py: deal overview + scenario comparison table
"""
