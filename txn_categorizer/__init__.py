"""Transaction categorization service.

A FastAPI + SQLAlchemy backend exposing CRUD routes for users, categories,
transactions, predictions and feedback, plus a keyword/fuzzy-match
categorizer. See ``main.py`` for the HTTP entry point and ``seed.py`` for
demo data.
"""
