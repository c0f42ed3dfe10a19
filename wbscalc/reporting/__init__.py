"""Reporting for finalized WBS trees."""
