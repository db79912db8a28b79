from __future__ import annotations

import re
import unicodedata


def normalize(name: str) -> str:
    """Fold a field name for loose comparison (case, width, separators)."""

    normalized = unicodedata.normalize("NFKC", name).strip().lower()
    return re.sub(r"[\s_\-]+", "", normalized)


def humanize(name: str) -> str:
    """``imdb_rating`` -> ``Imdb Rating``."""

    words = str(name).replace("_", " ").split()
    return " ".join(word[:1].upper() + word[1:] for word in words)
