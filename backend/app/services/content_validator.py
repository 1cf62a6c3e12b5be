"""
Content validation by binary sniffing.

The declared Content-Type and file extension come from the client and
can't be trusted. The true type is read from the leading bytes with
libmagic and checked against a fixed allow-list.
"""
import logging
from typing import Callable, FrozenSet, Optional

from app.config import settings
from app.exceptions import InvalidContentError

logger = logging.getLogger(__name__)

# Media and document types accepted for upload.
# No executables, scripts, archives or SVG (which can carry script).
ALLOWED_MIME_TYPES: FrozenSet[str] = frozenset({
    # Images
    'image/jpeg',
    'image/png',
    'image/gif',
    'image/webp',
    'image/bmp',
    'image/tiff',
    'image/heic',
    'image/heif',
    'image/avif',
    # Video
    'video/mp4',
    'video/webm',
    'video/quicktime',
    'video/x-matroska',
    'video/x-msvideo',
    'video/mpeg',
    'video/ogg',
    'video/3gpp',
    # Audio
    'audio/mpeg',
    'audio/mp4',
    'audio/x-m4a',
    'audio/aac',
    'audio/x-hx-aac-adts',
    'audio/wav',
    'audio/x-wav',
    'audio/ogg',
    'audio/flac',
    'audio/x-flac',
    'audio/webm',
    # Documents
    'application/pdf',
    'application/msword',
    'application/vnd.openxmlformats-officedocument.wordprocessingml.document',
    'application/vnd.ms-excel',
    'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
    'application/vnd.ms-powerpoint',
    'application/vnd.openxmlformats-officedocument.presentationml.presentation',
    'application/vnd.oasis.opendocument.text',
    'application/rtf',
    'text/rtf',
    'text/plain',
    'text/csv',
})

Detector = Callable[[bytes], Optional[str]]


def sniff_with_libmagic(sample: bytes) -> Optional[str]:
    """Detect a MIME type from leading bytes using python-magic."""
    import magic

    return magic.from_buffer(sample, mime=True)


class ContentValidator:
    """
    Validates uploads against the allow-list using sniffed content type.

    Usage:
        validator = ContentValidator()
        mimetype = validator.validate(data, declared_mime="image/png")
    """

    def __init__(
        self,
        allowed_types: Optional[FrozenSet[str]] = None,
        detector: Optional[Detector] = None,
        sample_size: Optional[int] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Args:
            allowed_types: Accepted MIME types (default: ALLOWED_MIME_TYPES)
            detector: Callable mapping leading bytes to a MIME type (default: libmagic)
            sample_size: Number of leading bytes to sniff (default from settings)
            logger: Logger to use (default: module logger)
        """
        self.allowed_types = allowed_types if allowed_types is not None else ALLOWED_MIME_TYPES
        self._detector = detector or sniff_with_libmagic
        self._sample_size = sample_size or settings.sniff_sample_bytes
        self._logger = logger or logging.getLogger(__name__)

    def sniff(self, data: bytes) -> Optional[str]:
        """
        Return the detected MIME type of the content, or None when nothing
        confident can be said (empty buffer, unknown signature).
        """
        if not data:
            return None

        detected = self._detector(bytes(data[:self._sample_size]))
        if not detected:
            return None

        # libmagic may append parameters ("text/plain; charset=us-ascii")
        detected = detected.split(";", 1)[0].strip().lower()
        if detected in ("application/octet-stream", "application/x-empty"):
            return None
        return detected

    def is_allowed(self, mimetype: Optional[str]) -> bool:
        return mimetype is not None and mimetype in self.allowed_types

    def validate(self, data: bytes, declared_mime: Optional[str] = None) -> str:
        """
        Sniff the content and check it against the allow-list.

        Args:
            data: Upload bytes
            declared_mime: Client supplied type, only used for logging

        Returns:
            The sniffed MIME type

        Raises:
            InvalidContentError: If the type can't be detected or isn't allowed
        """
        detected = self.sniff(data)

        if not self.is_allowed(detected):
            self._logger.warning(
                f"Rejected content: detected={detected or 'unknown'} declared={declared_mime}"
            )
            raise InvalidContentError(detected, declared_mime)

        if declared_mime and declared_mime.lower() != detected:
            self._logger.debug(f"Declared type {declared_mime} differs from sniffed {detected}")

        return detected
