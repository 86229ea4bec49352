#!/usr/bin/env python3
# backend/init_db.py
"""
Database initialization script.

This script can be run from any directory:
    python backend/init_db.py
    cd backend && python init_db.py

The API also creates missing tables on startup; this is for provisioning a
database ahead of the first deploy.
"""
import sys
from pathlib import Path

# Add the backend directory to Python path so 'app' package is importable
backend_dir = Path(__file__).parent
sys.path.insert(0, str(backend_dir))

from app.config import settings
from app.database import init_db
from app.utils import setup_logging


if __name__ == "__main__":
    setup_logging()
    if settings.uses_memory_storage:
        sys.exit("STORAGE_BACKEND=memory has no tables to create")
    init_db()
