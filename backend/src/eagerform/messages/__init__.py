"""Locale catalogs and message resolution."""

from eagerform.messages.catalog import LocaleFormat, MessageCatalog, default_catalog
from eagerform.messages.resolver import MessageResolver, interpolate, unicode_length

__all__ = [
    "LocaleFormat",
    "MessageCatalog",
    "MessageResolver",
    "default_catalog",
    "interpolate",
    "unicode_length",
]
