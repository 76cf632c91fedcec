"""Raw byte line sources for feed files.

Lines are streamed lazily so a read failure surfaces while the import
runs, after the lines before it have been processed.
"""

from __future__ import annotations

import hashlib
from pathlib import Path
from typing import Iterator

from core.constants import HASH_ALGORITHM
from core.types import FeedKind, FeedSource, Partition


def read_feed_lines(feed_path: Path) -> Iterator[bytes]:
    """Yield raw byte lines of a local feed file, line endings included.

    Raises:
        OSError: If the file cannot be opened or read.
    """
    with feed_path.open("rb") as feed_file:
        yield from feed_file


def file_feed_source(
    feed_path: Path | str,
    kind: FeedKind,
    partition: Partition | None = None,
    buyer_id: str | None = None,
) -> FeedSource:
    """Wrap a local feed file as a feed source.

    Args:
        feed_path: Path of the extracted feed file.
        kind: Catalog or discount feed.
        partition: Optional partition tag for catalog feeds.
        buyer_id: Optional buyer tag for discount feeds.

    Returns:
        Feed source streaming the file's lines.
    """
    resolved_path = Path(feed_path).expanduser()
    return FeedSource(
        source_uri=str(resolved_path),
        kind=kind,
        lines=read_feed_lines(resolved_path),
        partition=partition,
        buyer_id=buyer_id,
    )


def feed_file_digest(feed_path: Path | str) -> str:
    """Return the digest an import of the file reports as ``feed_digest``.

    Raises:
        OSError: If the file cannot be read.
    """
    digest = hashlib.new(HASH_ALGORITHM)
    for raw_line in read_feed_lines(Path(feed_path).expanduser()):
        digest.update(raw_line)
    return digest.hexdigest()
