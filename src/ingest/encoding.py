"""Per-line text decoding for legacy feeds.

Feeds arrive as UTF-8 or as a Windows Latin code page. Each line is
decoded on its own so one bad line never poisons the rest of the feed.
"""

from __future__ import annotations

from core.constants import BYTE_ORDER_MARK, CANONICAL_ENCODING, FALLBACK_ENCODING
from core.errors import EncodingError

ATTEMPTED_ENCODINGS = (CANONICAL_ENCODING, FALLBACK_ENCODING)


def normalize_line(raw_line: bytes) -> str:
    """Decode one raw line into text.

    The canonical encoding is tried first, then the single-byte fallback
    code page. Line terminators and a leading byte order mark are removed.

    Args:
        raw_line: Raw bytes of one feed line.

    Returns:
        Decoded text without line terminator.

    Raises:
        EncodingError: If no attempted encoding accepts the bytes.
    """
    payload = raw_line.rstrip(b"\r\n")
    for encoding in ATTEMPTED_ENCODINGS:
        try:
            text = payload.decode(encoding)
        except UnicodeDecodeError:
            continue
        return text.lstrip(BYTE_ORDER_MARK)
    raise EncodingError(
        f"Line bytes are not valid {' or '.join(ATTEMPTED_ENCODINGS)}. "
        "Re-export the feed in UTF-8."
    )
