"""
Bag Ledger

An asset-ownership ledger with a built-in rising-price auction: every bag
has exactly one owner and a listed price, and anyone paying that price
takes ownership while the previous owner is paid out.
"""

__version__ = "1.0.0"
