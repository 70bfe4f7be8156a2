"""
isupipe API v1 Routers
"""

from isupipe.api.v1 import health, reactions

__all__ = ["health", "reactions"]
