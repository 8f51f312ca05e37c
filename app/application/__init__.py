"""
Application layer package.

Use cases for the forecasting pipeline: feature passes, forecast runs,
validation passes and accuracy summaries. Each use case receives its
ports through the constructor and exposes a single ``execute``.
"""
