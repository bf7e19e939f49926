"""Domain services: rounds, fixtures, predictions, scoring, standings and leagues.

Every function takes the SQLAlchemy session it works on as its first argument.
"""
