"""Short hash keys addressing cached artifacts on disk."""

import hashlib

DEFAULT_KEY_LENGTH = 5


def archive_key(*names: str, length: int = DEFAULT_KEY_LENGTH) -> str:
    """MD5 of the concatenated archive paths, truncated to ``length`` hex chars.

    One name keys an API dump, two names (old, new) key a comparison. Keys are
    short, so callers check the archive paths stored alongside a record
    before trusting it.
    """
    digest = hashlib.md5("".join(names).encode("utf-8")).hexdigest()
    return digest[:length]
