"""
Direct reads from the sfnt table directory.

OpenSCAD sizes text against the OS/2 typographic ascender, which fontTools
exposes only after fully decompiling the table. The reader here pulls the one
value it needs straight out of the raw bytes so a damaged or truncated OS/2
table can never fail font loading.
"""

import logging
import struct

log = logging.getLogger(__name__)

TABLE_DIRECTORY_OFFSET = 12
TABLE_RECORD_SIZE = 16
OS2_TAG = b"OS/2"
TYPO_ASCENDER_OFFSET = 68


def find_table(data: bytes, tag: bytes) -> tuple[int, int] | None:
    """Returns (offset, length) of the table with the given tag, or None.

    The record is only returned if the table it describes lies entirely
    within data.
    """
    if len(data) < TABLE_DIRECTORY_OFFSET:
        return None
    (num_tables,) = struct.unpack_from(">H", data, 4)
    if len(data) < TABLE_DIRECTORY_OFFSET + num_tables * TABLE_RECORD_SIZE:
        return None

    for i in range(num_tables):
        record = TABLE_DIRECTORY_OFFSET + i * TABLE_RECORD_SIZE
        if data[record : record + 4] != tag:
            continue
        offset, length = struct.unpack_from(">II", data, record + 8)
        if offset + length > len(data):
            log.debug(f"Table {tag!r} at {offset} (+{length}) runs past end of data.")
            return None
        return offset, length
    return None


def read_typo_ascender(data: bytes) -> int | None:
    """Returns OS/2 sTypoAscender in font units if present and positive."""
    table = find_table(data, OS2_TAG)
    if table is None:
        return None
    offset, length = table
    if length < TYPO_ASCENDER_OFFSET + 2:
        return None
    (ascender,) = struct.unpack_from(">h", data, offset + TYPO_ASCENDER_OFFSET)
    return ascender if ascender > 0 else None
