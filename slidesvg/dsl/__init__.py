"""Normalized document model."""

from slidesvg.dsl.schema import Document, Element, normalize_document, normalize_element

__all__ = ["Document", "Element", "normalize_document", "normalize_element"]
