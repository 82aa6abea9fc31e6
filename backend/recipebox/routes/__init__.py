"""
RecipeBox Backend — API Routes Package
========================================

Route Inventory:
    - users.py:    /api/users/...    accounts, sessions, favorites, ratings
    - recipes.py:  /api/recipes/...  recipe browsing
    - health.py:   GET /health       database probe

Routes stay thin: parse input, run one catalog statement, render the
envelope. Errors are raised, never returned.
"""
