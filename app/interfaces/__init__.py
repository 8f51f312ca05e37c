"""
Interfaces layer package.

HTTP entry points: the health probe and the pricing router with its
Pydantic schemas. Routes build a use case, call it and shape the response.
"""
