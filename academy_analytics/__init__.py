"""
Academy Analytics Platform

Reporting layer for the sports academy: warehouse-style readers over the
record store, centre and club-wide rollups, and a cached read-only API.
"""

__version__ = "1.0.0"
