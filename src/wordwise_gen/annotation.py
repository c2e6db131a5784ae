"""
Single-pass wordwise annotation of converted book markup.

Tokens are the runs of characters between single spaces; no other
whitespace or punctuation splits a token. Distances handed to the
:class:`~wordwise_gen.mediator.DistanceMediator` are character offsets of
the token's first character, so ``max_distance=1000`` means "at least 1000
characters since the previous annotation of the same word".
"""

from __future__ import annotations

import html
import logging
from typing import List, Mapping

from .mediator import DistanceMediator
from .models import AnnotationResult, DictionaryEntry

logger = logging.getLogger(__name__)

DELIMITER = " "
PUNCTUATION = ",<>;*&~/\"[]#?`–.'!“”:"
RUBY_TEMPLATE = "<ruby>{word}<rt>{gloss}</rt></ruby>"

_PUNCTUATION_TABLE = str.maketrans("", "", PUNCTUATION)


def clean_word(token: str) -> str:
    """Strip surrounding whitespace and drop every punctuation character."""
    return token.strip().translate(_PUNCTUATION_TABLE)


def render_gloss(word: str, gloss: str) -> str:
    return RUBY_TEMPLATE.format(word=word, gloss=html.escape(gloss, quote=False))


def annotate_document(
    text: str,
    dictionary: Mapping[str, DictionaryEntry],
    mediator: DistanceMediator,
    max_hint_level: int,
) -> AnnotationResult:
    """Annotate ``text`` in one left-to-right pass and count what was done."""
    pieces: List[str] = []
    position = 0
    end = len(text)
    tokens_scanned = 0
    annotations = 0

    while True:
        next_delim = text.find(DELIMITER, position)
        token_end = end if next_delim == -1 else next_delim
        token = text[position:token_end]
        tokens_scanned += 1

        replacement = _annotate_token(token, position, dictionary, mediator, max_hint_level)
        if replacement is None:
            pieces.append(token)
        else:
            pieces.append(replacement)
            annotations += 1

        if next_delim == -1:
            break
        pieces.append(DELIMITER)
        position = next_delim + len(DELIMITER)

    logger.debug("Scanned %d tokens, added %d annotations", tokens_scanned, annotations)
    return AnnotationResult(
        text="".join(pieces), tokens_scanned=tokens_scanned, annotations=annotations
    )


def _annotate_token(
    token: str,
    position: int,
    dictionary: Mapping[str, DictionaryEntry],
    mediator: DistanceMediator,
    max_hint_level: int,
) -> str | None:
    """Return the annotated token, or None when it is emitted unchanged."""
    word = clean_word(token)
    if not word:
        return None
    key = word.lower()
    entry = dictionary.get(key)
    if entry is None or entry.hint_level > max_hint_level:
        return None
    # Punctuation inside the token (e.g. "don't") leaves nothing to wrap.
    if word not in token:
        return None
    if mediator.has_recent_annotation(key, position):
        return None
    mediator.record_annotation(key, position)
    return token.replace(word, render_gloss(word, entry.gloss), 1)


def annotate_text(
    text: str,
    dictionary: Mapping[str, DictionaryEntry],
    mediator: DistanceMediator,
    max_hint_level: int,
) -> str:
    return annotate_document(text, dictionary, mediator, max_hint_level).text


def annotate(
    content: bytes,
    dictionary: Mapping[str, DictionaryEntry],
    mediator: DistanceMediator,
    max_hint_level: int,
    encoding: str = "utf-8",
) -> bytes:
    """Annotate raw document bytes and return the new byte sequence."""
    text = content.decode(encoding, errors="surrogateescape")
    annotated = annotate_text(text, dictionary, mediator, max_hint_level)
    return annotated.encode(encoding, errors="surrogateescape")
