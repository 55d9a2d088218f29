"""
Persistence layer: SQLite via the ``databases`` library.
"""
