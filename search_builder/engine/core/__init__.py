"""Engine core module.

Document structures shared by every engine:
- Document, Corpus
- RankedHit (engine output)
"""

from .document import Corpus, Document, RankedHit

__all__ = [
    "Corpus",
    "Document",
    "RankedHit",
]
