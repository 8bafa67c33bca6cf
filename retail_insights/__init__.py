"""
Retail Insights client: dataset ingestion, validation, and campaign tooling
for the retail analytics backend.
"""

__version__ = "1.0.0"
