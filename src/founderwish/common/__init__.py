"""
HTTP clients and local collaborators for the FounderWish SDK.

Modules:
- errors: typed error hierarchy
- http: single-attempt JSON request helpers on httpx
- board: board slug resolution with session caching
- feedback: feedback submission with device/profile enrichment
- public_items: public item listing, upvotes and the optimistic vote protocol
- device: device metadata capture
- kv_store: JSON-file store for install identity and voted ids
"""

__all__ = [
    "board",
    "device",
    "errors",
    "feedback",
    "http",
    "kv_store",
    "public_items",
]
