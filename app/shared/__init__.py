"""
Cross-cutting concerns shared by the API, the CLI and the scheduler:
domain-error to HTTP mapping and process-wide logging setup.
"""
