"""Equipment app package.

Owns the equipment catalogue (categories, fungible variants and legacy
single units) and the read side of the reservation engine: the overlap
query engine and the inventory ledger built on top of it.
"""
