"""Dashboards module router aggregation."""
from lms.routers import dashboard

ROUTERS = [dashboard.router]
