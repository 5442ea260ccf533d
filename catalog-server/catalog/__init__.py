"""
Catalog read service: product listing from Postgres, shopping carts in Redis.
"""

__version__ = "1.0.0"
