"""
Utility modules for the class series backend.

This package contains shared helpers used across the application:
school-timezone date handling and minute-of-day interval algebra.
"""
