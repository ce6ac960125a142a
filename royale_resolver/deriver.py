"""
Secret word derivation for the Wordle Royale resolver.

The target for a game is selected by keying HMAC-SHA256 with the
long-lived server secret over the round, the participant and a per-game
random nonce, then reducing the digest to an index into the corpus.
The nonce is generated once when the game is created and stored with it,
so a game's target never depends on the wall clock and is never
recomputed.
"""

import logging
from pathlib import Path
from typing import List, Sequence, Union

from .config import ConfigurationError
from .util import hmac_sha256

logger = logging.getLogger(__name__)


def load_corpus(path: Union[str, Path], word_length: int = 5) -> List[str]:
    """
    Load the target corpus from a text file.

    One word per line; blank lines and lines starting with '#' are ignored.
    Words are upper-cased and de-duplicated, keeping first occurrence order.

    Raises:
        ConfigurationError: If the file is missing, empty, or holds a word
            that is not `word_length` ASCII letters
    """
    p = Path(path)
    try:
        raw = p.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"word corpus unavailable: {p}") from e

    words: List[str] = []
    seen = set()
    for lineno, line in enumerate(raw.splitlines(), start=1):
        w = line.strip()
        if not w or w.startswith("#"):
            continue
        w = w.upper()
        if len(w) != word_length or not (w.isascii() and w.isalpha()):
            raise ConfigurationError(f"{p}:{lineno}: invalid corpus entry {w!r}")
        if w not in seen:
            seen.add(w)
            words.append(w)

    if not words:
        raise ConfigurationError(f"word corpus is empty: {p}")

    logger.info("Loaded %d target words from %s", len(words), p)
    return words


class SecretDeriver:
    """Selects a game's target word from the corpus."""

    def __init__(self, server_secret: Union[str, bytes], corpus: Sequence[str]):
        if not server_secret:
            raise ConfigurationError("server secret is required for word derivation")
        if not corpus:
            raise ConfigurationError("word corpus is empty")
        self._secret = server_secret
        self._corpus = tuple(corpus)

    @property
    def word_length(self) -> int:
        return len(self._corpus[0])

    def __len__(self) -> int:
        return len(self._corpus)

    def derive(self, round_id: str, participant: str, nonce: str) -> str:
        """
        Derive the target word for one game.

        Args:
            round_id: Canonical round identifier
            participant: Participant address (normalized to lower case here)
            nonce: Random per-game nonce stored with the game

        Returns:
            The target word
        """
        message = f"{round_id}-{participant.lower()}-{nonce}"
        digest = hmac_sha256(self._secret, message)
        index = int.from_bytes(digest[:8], "big") % len(self._corpus)
        return self._corpus[index]
