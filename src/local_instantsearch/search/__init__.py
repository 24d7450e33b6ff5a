"""Text index collaborator used by search workers."""

from local_instantsearch.search.text_index import LocalTextIndex, TextIndex, TextIndexFactory, tokenize


__all__ = ["LocalTextIndex", "TextIndex", "TextIndexFactory", "tokenize"]
