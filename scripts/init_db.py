#!/usr/bin/env python3
"""
Create all tables that do not exist yet.
Run from the project root: python -m scripts.init_db
"""
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import genr8.models  # noqa: F401  registers every table on Base.metadata
from genr8.db.base import Base
from genr8.db.session import engine


def main():
    Base.metadata.create_all(bind=engine)
    print("Tables: " + ", ".join(sorted(Base.metadata.tables)))


if __name__ == "__main__":
    main()
