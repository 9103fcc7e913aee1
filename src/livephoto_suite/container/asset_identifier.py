"""Cross-reference token linking a still image to its paired video."""

import uuid
from typing import Optional


def allocate_asset_identifier(requested: Optional[str] = None) -> str:
    """Return ``requested`` if non-empty, otherwise a fresh random identifier.

    Generated identifiers are upper-case UUID4 strings, the form used by
    QuickTime content identifiers.
    """
    if requested:
        return requested
    return str(uuid.uuid4()).upper()
