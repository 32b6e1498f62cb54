# =============================================================================
# Transcript Chunker - Character-Based Splitting
# =============================================================================
#
# Earnings call transcripts routinely run to 50-80K characters, far more
# than we want in a single summarisation prompt. The transcript is split
# into bounded pieces which are summarised independently.
#
# DESIGN DECISION: Characters, not tokens.
# The chunk only has to fit comfortably inside the model's context window;
# an exact token count buys nothing here. Character slicing is provider-
# agnostic (no tokenizer per model) and trivially reversible.
#
# Two strategies:
#   split_into_chunks()          - fixed-size slices (default)
#   split_into_sentence_chunks() - packs whole sentences up to the limit so
#                                  a chunk boundary rarely cuts a sentence
#
# INVARIANTS (both strategies):
#   - No chunk is longer than max_chunk_size
#   - No content is dropped, trailing remainder included
# =============================================================================

from __future__ import annotations

import logging
import re

logger = logging.getLogger(__name__)

# Split after a period, or on a newline (the newline itself is kept with
# the preceding piece so joining the pieces restores the text).
_SENTENCE_BOUNDARY = re.compile(r"(?<=\.)|(?<=\n)")


def split_into_chunks(text: str, max_chunk_size: int) -> list[str]:
    """
    Split text into consecutive slices of at most max_chunk_size characters.

    The last chunk holds the remainder, so "".join(chunks) == text.

    Raises:
        ValueError: If max_chunk_size is not positive.
    """
    if max_chunk_size <= 0:
        raise ValueError(f"max_chunk_size must be positive, got {max_chunk_size}")

    return [
        text[start:start + max_chunk_size]
        for start in range(0, len(text), max_chunk_size)
    ]


def split_into_sentence_chunks(text: str, max_chunk_size: int) -> list[str]:
    """
    Pack sentences into chunks of at most max_chunk_size characters.

    Sentences are split after "." and at newlines. A single sentence
    longer than the limit is hard-split with split_into_chunks(). Chunks
    are stripped of surrounding whitespace and empty chunks are skipped.

    Raises:
        ValueError: If max_chunk_size is not positive.
    """
    if max_chunk_size <= 0:
        raise ValueError(f"max_chunk_size must be positive, got {max_chunk_size}")

    chunks: list[str] = []
    current = ""

    def flush() -> None:
        nonlocal current
        if current.strip():
            chunks.append(current.strip())
        current = ""

    for sentence in _SENTENCE_BOUNDARY.split(text):
        if not sentence:
            continue

        if len(sentence) > max_chunk_size:
            flush()
            for piece in split_into_chunks(sentence, max_chunk_size):
                if piece.strip():
                    chunks.append(piece.strip())
            continue

        if len(current) + len(sentence) > max_chunk_size:
            flush()
        current += sentence

    flush()
    return chunks


def chunk_transcript(
    transcript: str,
    max_chunk_size: int,
    strategy: str = "fixed",
) -> list[str]:
    """
    Split a transcript with the configured strategy.

    Unknown strategies fall back to fixed-size splitting.
    """
    if strategy == "sentence":
        chunks = split_into_sentence_chunks(transcript, max_chunk_size)
    else:
        if strategy != "fixed":
            logger.warning(
                "Unknown chunk strategy '%s', using fixed-size chunks",
                strategy,
            )
        chunks = split_into_chunks(transcript, max_chunk_size)

    logger.info(
        "Chunked transcript: %d chars into %d chunks (max=%d, strategy=%s)",
        len(transcript), len(chunks), max_chunk_size, strategy,
    )
    return chunks
