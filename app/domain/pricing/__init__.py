"""
Pricing bounded context: domain layer.

This module contains all domain types for the pricing context:
- Raw observations and derived feature records
- Published model parameter bundles
- Price predictions and their accuracy records
"""
