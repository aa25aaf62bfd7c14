"""Descriptive analytics over a television listings CSV.

The CSV is loaded once into an in-memory DuckDB table (``ecommerce``) and a
fixed catalog of ten named queries is run against it. Results come back as
pandas DataFrames and can be printed, charted or exported.
"""

__version__ = "0.1.0"
