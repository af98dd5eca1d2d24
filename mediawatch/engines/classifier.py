"""Extension-based media classification."""
from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

from ..core.config import EXT_TO_TYPE, MediaType
from ..core.errors import UnsupportedType


def classify(path: Union[str, Path]) -> Optional[MediaType]:
    """Return the media type for a path, or None if the extension is unknown.

    Only the extension is consulted; file contents are never read.
    """
    return EXT_TO_TYPE.get(Path(path).suffix.lower())


def is_media(path: Union[str, Path]) -> bool:
    return classify(path) is not None


def require_media_type(path: Union[str, Path]) -> MediaType:
    """Like :func:`classify` but raises for unsupported files.

    Raises:
        UnsupportedType: Extension is not in any known set.
    """
    media_type = classify(path)
    if media_type is None:
        raise UnsupportedType(Path(path))
    return media_type
