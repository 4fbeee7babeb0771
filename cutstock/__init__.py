"""
cutstock — cut-to-size custom orders for sheet, film and rod stock.

Converts dual-unit dimensions, prices and weighs the piece, provisions a
one-off Shopify variant and attaches it to the buyer's cart.
"""
