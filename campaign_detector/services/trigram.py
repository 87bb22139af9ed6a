"""pg_trgm compatible trigram similarity.

Used for similarity search when the database is not PostgreSQL (local
development and tests run on SQLite, which has no ``pg_trgm``).
"""
import re
from typing import FrozenSet

_WORD = re.compile(r"[^\W_]+")


def trigrams(text: str) -> FrozenSet[str]:
    """Extract trigrams the way ``pg_trgm`` does.

    Each alphanumeric word is lowercased and padded with two spaces in front
    and one behind, so ``"cat"`` yields ``"  c"``, ``" ca"``, ``"cat"``, ``"at "``.
    """
    grams = set()
    for word in _WORD.findall(text.lower()):
        padded = f"  {word} "
        for i in range(len(padded) - 2):
            grams.add(padded[i:i + 3])
    return frozenset(grams)


def similarity(left: str, right: str) -> float:
    """Jaccard similarity of the two trigram sets, in [0, 1]."""
    left_grams = trigrams(left)
    right_grams = trigrams(right)
    if not left_grams or not right_grams:
        return 0.0
    shared = len(left_grams & right_grams)
    return shared / (len(left_grams) + len(right_grams) - shared)
