"""
dbquery

Natural-language questions answered with SQL against sqlite, postgres and
mysql: schema introspection, a read-only guard, execution with value
normalization, and table/JSON rendering.
"""

__version__ = "0.1.0"
