"""
Infrastructure layer package.

SQLAlchemy adapters for the domain ports: observation and weather
storage, feature records, parameter bundles, predictions and accuracy.
"""
