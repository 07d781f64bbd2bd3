"""
Content type inference for served payloads.
"""

import logging
import mimetypes

import filetype

logger = logging.getLogger(__name__)

OCTET_STREAM = "application/octet-stream"
PLAIN_TEXT = "text/plain"


class ContentTypeSniffer:
    """
    Classify payloads by their leading bytes, falling back to the file name.

    Unrecognised names are assumed to be text rather than arbitrary binary;
    this is a naming heuristic, not a text/binary detector.
    """

    def __init__(self):
        mimetypes.init()

    def classify(self, payload: bytes, fallback_name: str) -> str:
        """
        Determine the MIME type of a payload.

        Args:
            payload: Raw payload bytes
            fallback_name: Link name used when no signature matches

        Returns:
            A MIME type string, never None
        """
        kind = filetype.guess(payload) if payload else None
        if kind is not None:
            logger.debug(f"Identified entry mimetype as {kind.mime}")
            return kind.mime

        mime_type, _ = mimetypes.guess_type(fallback_name or "")
        if mime_type is None or mime_type == OCTET_STREAM:
            mime_type = PLAIN_TEXT
        logger.debug(f"Assumed mimetype from link name: {mime_type}")
        return mime_type
