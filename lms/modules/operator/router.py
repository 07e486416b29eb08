"""Operator module router aggregation."""
from lms.routers import operator, reports

ROUTERS = [operator.router, reports.router]
