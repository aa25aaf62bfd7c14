"""Named analytical queries over the listings table.

Each catalog entry is addressable by name or by its number (1-10) and returns
a QueryResult holding a pandas DataFrame. Two entries change the schema
rather than reading rows: the brand/resolution view (re-evaluated on every
read) and the brand/price index (created once, later calls are no-ops).
"""
