"""Pricing HTTP interface: forecasts, predictions, validations, accuracy."""
