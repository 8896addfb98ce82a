"""Command-line front end for the pool engine.

Open the SQL-backed stores, drive ``PoolEngine`` operations from typer
commands, and render price history and reserves with Plotly.
"""
