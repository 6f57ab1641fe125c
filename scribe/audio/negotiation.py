"""Picks the encoding a recording session will use."""

import logging
from typing import Callable, Iterable, Optional

from ..exceptions import UnsupportedEncodingError
from ..models.audio import DEFAULT_ENCODING, FALLBACK_ENCODINGS, Encoding

logger = logging.getLogger(__name__)


def negotiate_encoding(is_supported: Callable[[Encoding], bool],
                       preferred: Optional[Encoding] = DEFAULT_ENCODING,
                       fallbacks: Iterable[Encoding] = FALLBACK_ENCODINGS) -> Encoding:
    """Return the first supported encoding, trying ``preferred`` before ``fallbacks``.

    Raises:
        UnsupportedEncodingError: If no candidate is supported
    """
    candidates = [preferred] if preferred is not None else []
    candidates.extend(fallbacks)

    for candidate in candidates:
        if is_supported(candidate):
            if candidate != preferred:
                logger.info(f"Preferred encoding {preferred} unsupported, using {candidate}")
            return candidate
        logger.debug(f"Encoding not supported: {candidate}")

    raise UnsupportedEncodingError(str(c) for c in candidates)
