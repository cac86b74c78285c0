"""
Content: reference fact repository and stitch content provider.
"""
from zenjin.content.repository import InMemoryFactRepository, StaticContentProvider

__all__ = ["InMemoryFactRepository", "StaticContentProvider"]
