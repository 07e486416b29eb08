"""Catalog module router aggregation."""
from lms.routers import courses, enrollments

ROUTERS = [courses.router, enrollments.router]
