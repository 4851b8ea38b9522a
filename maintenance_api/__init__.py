"""
Predictive Maintenance REST API.

FastAPI application exposing alert listings, lifecycle actions,
analytics and on-demand scans.
"""
