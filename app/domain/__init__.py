"""
Domain layer package.

Market observations, feature records, parameter bundles, predictions and
accuracy records, with the repository ports and errors around them.
No framework imports and no IO.
"""
