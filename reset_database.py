#!/usr/bin/env python3
"""
Database reset script for the Class Series backend.

This script drops every table and recreates the schema from the models.
Use this to get a clean database state for local development.
"""

import sys
import os

# Add backend/src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), 'backend', 'src'))

from core.config import DATABASE_URL
from core.database import create_tables, drop_tables

# Import all models to ensure they're registered with Base
from models import ClassSeries, ClassSession, UserAvailability, Vacation  # noqa: F401


def reset_database():
    """Reset the database by dropping all tables and recreating them."""

    print("Resetting Class Series database...")
    print(f"Database URL: {DATABASE_URL}")

    # Confirm action (in case someone runs this accidentally)
    if "_dev" not in str(DATABASE_URL) and "test" not in str(DATABASE_URL):
        print("ERROR: This script only works with development or test databases!")
        print(f"Current database: {DATABASE_URL}")
        return

    try:
        drop_tables()
        print("All tables dropped")
        create_tables()
        print("All tables created")
        print("Database reset complete!")
    except Exception as e:
        print(f"Error resetting database: {e}")
        sys.exit(1)


if __name__ == "__main__":
    reset_database()
