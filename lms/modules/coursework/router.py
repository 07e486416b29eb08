"""Coursework module router aggregation."""
from lms.routers import assignments, grades, submissions

ROUTERS = [assignments.router, submissions.router, grades.router]
