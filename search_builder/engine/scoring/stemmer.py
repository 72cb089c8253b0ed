"""Basic suffix stemmer for token normalization.

This module provides a lightweight stemmer so that morphological variants
("cats" / "cat", "indexed" / "index") land on the same index term, without
external dependencies like NLTK or spaCy.
"""


def stem_token(word: str) -> str:
    """Strip common English suffixes from a single token.

    The same function runs at index time and at query time, so the stems only
    need to be consistent, not linguistically correct. Minimum-length guards
    keep short words like "sing" or "bus" intact.

    Args:
        word: The token to stem.

    Returns:
        The stemmed token (lowercased).
    """
    word = word.lower()

    # Longer suffixes first; order matters.
    if len(word) > 7 and word.endswith("tion"):
        return word[:-4]
    if len(word) > 7 and word.endswith("ment"):
        return word[:-4]
    if len(word) > 7 and word.endswith("ness"):
        return word[:-4]
    if len(word) > 5 and word.endswith("ing"):
        return word[:-3]
    if len(word) > 4 and word.endswith("ies"):
        return word[:-3] + "y"
    if len(word) > 4 and word.endswith("ed") and not word.endswith("eed"):
        return word[:-2]
    if len(word) > 4 and word.endswith("ly"):
        return word[:-2]
    if len(word) > 3 and word.endswith("s") and not word.endswith(("ss", "us", "is")):
        return word[:-1]
    return word
