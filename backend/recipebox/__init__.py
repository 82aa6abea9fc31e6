"""
RecipeBox Backend — Application Package Initializer
====================================================

What: Marks the `recipebox` directory as a Python package.
Who:  Imported by uvicorn (`uvicorn recipebox.main:app`), pytest, and every module.

Architecture Note:
    ┌─────────────────────────────────────┐
    │     Routes (HTTP → envelope)        │  ← one statement per request
    ├─────────────────────────────────────┤
    │     Auth Gate + Security            │  ← session → user_id, bcrypt
    ├─────────────────────────────────────┤
    │     Query Catalog (queries.py)      │  ← named parameterized SQL
    ├─────────────────────────────────────┤
    │     QueryExecutor (database.py)     │  ← pooled async sessions
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
