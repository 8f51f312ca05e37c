"""
Pricing bounded context: infrastructure layer.

SQLAlchemy adapters implementing the domain ports. Works against
PostgreSQL (psycopg) in production and SQLite in tests.
"""
