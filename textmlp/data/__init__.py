"""Text corpora, vocabularies and feature encoding."""

from .corpus import Corpus, Document, load_corpus, shuffled_batches
from .vocabulary import Vocabulary

__all__ = ["Corpus", "Document", "Vocabulary", "load_corpus", "shuffled_batches"]
