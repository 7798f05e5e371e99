"""Vector store access: capability, filters and bounded pagination."""

from .base import ScrollPage, StoredPoint, VectorStore
from .filters import parse_filter_expr, translate_filter
from .paginator import BoundedPaginator
from .qdrant import QdrantVectorStore

__all__ = [
    "BoundedPaginator",
    "QdrantVectorStore",
    "ScrollPage",
    "StoredPoint",
    "VectorStore",
    "parse_filter_expr",
    "translate_filter",
]
