"""
isupipe - livestream reactions

Batched response hydration for livestream reaction events.

CORE CONTRACTS:
- One batched query per reference type (no N+1)
- One response per reaction, in input order
- Missing references hydrate to zero values, never errors
- Reads, writes and hydration share one unit of work
"""

__version__ = "1.0.0"
