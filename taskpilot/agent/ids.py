"""Extraction of addressable element identifiers from snapshot markup."""

from __future__ import annotations

import re

# Textual scan: the snapshot only assigns numeric ids to addressable elements,
# and tags may be left unterminated.
_ID_ATTRIBUTE = re.compile(r"""(?<![\w-])id=["']([^"']+)["']""")


def extract_ids(markup: str) -> list[int]:
    """
    Return the integer `id` attribute values of `markup` in document order.

    Duplicates are kept as found; non-numeric ids are skipped.
    """
    ids: list[int] = []
    for match in _ID_ATTRIBUTE.finditer(markup):
        try:
            ids.append(int(match.group(1)))
        except ValueError:
            continue
    return ids
