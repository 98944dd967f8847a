"""EXIF block decoding on top of Pillow's TIFF directory reader."""

import logging
import math
import string
import warnings
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from PIL import Image, TiffImagePlugin
from PIL.ExifTags import GPSTAGS, TAGS

from .errors import CorruptedFileError
from .segments import EXIF_HEADER

logger = logging.getLogger(__name__)


EXIF_IFD_POINTER = 0x8769
GPS_IFD_POINTER = 0x8825
INTEROP_IFD_POINTER = 0xA005
MAKER_NOTE = 0x927C
USER_COMMENT = 0x9286

# Offsets and opaque vendor blobs, never emitted as values
SKIPPED_TAGS = frozenset([EXIF_IFD_POINTER, GPS_IFD_POINTER, INTEROP_IFD_POINTER, MAKER_NOTE])

# Windows Explorer fields (XPTitle, XPComment, XPAuthor, XPKeywords, XPSubject)
XP_TAGS = frozenset([0x9C9B, 0x9C9C, 0x9C9D, 0x9C9E, 0x9C9F])

# UserComment starts with an 8-byte character code
USER_COMMENT_CODES = {
    b'ASCII\x00\x00\x00': 'ascii',
    b'JIS\x00\x00\x00\x00\x00': 'iso2022_jp',
    b'\x00' * 8: 'utf-8',
}
UNICODE_CODE = b'UNICODE\x00'

# Hemisphere references some writers store as BYTE instead of ASCII
GPS_REF_TAGS = ('GPSLatitudeRef', 'GPSLongitudeRef', 'GPSDestLatitudeRef', 'GPSDestLongitudeRef')

_PRINTABLE = frozenset(string.printable.encode('ascii'))

# Non-text byte strings up to this length are emitted as integer lists
SHORT_BYTES = 8


@dataclass
class ExifData:
    """Decoded EXIF tags, keyed by tag name.

    ``warnings`` holds problems Pillow reported while reading a damaged
    block; whatever it could still read is kept in ``tags`` and ``gps``.
    """
    tags: Dict[str, Any] = field(default_factory=dict)
    gps: Dict[str, Any] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.tags or self.gps)


def to_json_safe(value: Any) -> Any:
    """Convert a decoded tag value into something ``json.dumps`` accepts."""
    if isinstance(value, TiffImagePlugin.IFDRational):
        number = float(value)
        return None if math.isnan(number) else number
    if isinstance(value, float):
        return None if math.isnan(value) or math.isinf(value) else value
    if isinstance(value, (bool, int)) or value is None:
        return value
    if isinstance(value, str):
        return value.rstrip('\x00')
    if isinstance(value, (bytes, bytearray)):
        # Single BYTE values such as GPSAltitudeRef
        if len(value) == 1:
            return value[0]
        stripped = bytes(value).rstrip(b'\x00')
        if stripped and all(byte in _PRINTABLE for byte in stripped):
            return stripped.decode('ascii')
        if len(value) <= SHORT_BYTES:
            return list(value)
        return f'<binary_data_{len(value)}_bytes>'
    if isinstance(value, (list, tuple)):
        return [to_json_safe(item) for item in value]
    if isinstance(value, dict):
        return {str(key): to_json_safe(item) for key, item in value.items()}
    return str(value)


def _as_bytes(value: Any) -> Optional[bytes]:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, (list, tuple)) and all(isinstance(v, int) and 0 <= v < 256 for v in value):
        return bytes(value)
    return None


def decode_user_comment(value: Any, big_endian: bool = False) -> Optional[str]:
    """Decode a UserComment value by its character code prefix.

    Returns:
        The comment text, or None if the value is not a coded comment
    """
    if isinstance(value, str):
        return value.rstrip('\x00').strip()

    raw = _as_bytes(value)
    if raw is None or len(raw) < 8:
        return None

    code, text = raw[:8], raw[8:]
    if code == UNICODE_CODE:
        encoding = 'utf-16-be' if big_endian else 'utf-16-le'
    else:
        encoding = USER_COMMENT_CODES.get(code)
    if encoding is None:
        return None

    return text.decode(encoding, errors='replace').rstrip('\x00').strip()


def decode_xp_text(value: Any) -> Optional[str]:
    """Decode a Windows XP* tag, stored as UTF-16LE bytes."""
    if isinstance(value, str):
        return value.rstrip('\x00')

    raw = _as_bytes(value)
    if raw is None:
        return None
    if len(raw) % 2:
        raw = raw[:-1]
    return raw.decode('utf-16-le', errors='replace').rstrip('\x00')


def _ref_text(ref: Any) -> Optional[str]:
    """Normalize a GPS reference that may come back as text, a byte or a code."""
    if isinstance(ref, list) and len(ref) == 1:
        ref = ref[0]
    if isinstance(ref, (bytes, bytearray)):
        ref = bytes(ref).decode('ascii', errors='replace')
    elif isinstance(ref, int) and not isinstance(ref, bool):
        ref = chr(ref) if 0 < ref < 128 else None
    if not isinstance(ref, str):
        return None
    return ref.rstrip('\x00').strip().upper() or None


def gps_to_decimal(values: Sequence[Any], ref: Any) -> Optional[float]:
    """Convert a (degrees, minutes, seconds) triple to signed decimal degrees.

    Args:
        values: Degrees, minutes and seconds (rationals or numbers)
        ref: Hemisphere reference ('N', 'S', 'E' or 'W'), as text or a byte code

    Returns:
        Decimal degrees rounded to 6 places, or None if not computable
    """
    try:
        degrees, minutes, seconds = (float(v) for v in values)
    except (TypeError, ValueError, ZeroDivisionError):
        return None

    if any(math.isnan(v) for v in (degrees, minutes, seconds)):
        return None

    decimal = degrees + minutes / 60.0 + seconds / 3600.0
    if _ref_text(ref) in ('S', 'W'):
        decimal = -decimal
    return round(decimal, 6)


def _named(ifd: Dict[int, Any], names: Dict[int, str], big_endian: bool = False) -> Dict[str, Any]:
    tags = {}
    for tag_id, value in ifd.items():
        if tag_id in SKIPPED_TAGS:
            continue

        text = None
        if tag_id == USER_COMMENT:
            text = decode_user_comment(value, big_endian)
        elif tag_id in XP_TAGS:
            text = decode_xp_text(value)

        tags[names.get(tag_id, f'Tag_{tag_id}')] = text if text is not None else to_json_safe(value)
    return tags


def summarize_gps(gps: Dict[str, Any]) -> Dict[str, Any]:
    """Add decimal latitude, longitude and altitude to named GPS tags."""
    summary = dict(gps)

    for name in GPS_REF_TAGS:
        if name in summary:
            ref = _ref_text(summary[name])
            if ref is not None:
                summary[name] = ref

    if 'GPSLatitude' in gps:
        latitude = gps_to_decimal(gps['GPSLatitude'], summary.get('GPSLatitudeRef'))
        if latitude is not None:
            summary['latitude'] = latitude

    if 'GPSLongitude' in gps:
        longitude = gps_to_decimal(gps['GPSLongitude'], summary.get('GPSLongitudeRef'))
        if longitude is not None:
            summary['longitude'] = longitude

    altitude = gps.get('GPSAltitude')
    if isinstance(altitude, list) and len(altitude) == 1:
        altitude = altitude[0]
    if isinstance(altitude, (int, float)) and not isinstance(altitude, bool):
        # AltitudeRef 1 means below sea level
        below = gps.get('GPSAltitudeRef') == 1
        summary['altitude'] = round(-altitude if below else altitude, 2)

    return summary


def decode_exif(payload: bytes) -> ExifData:
    """Decode the body of an EXIF APP1 segment.

    Args:
        payload: Segment data starting with ``Exif\\0\\0``

    Returns:
        ExifData with IFD0 and Exif sub-IFD tags merged, GPS tags, and any
        warnings Pillow raised while reading a damaged block

    Raises:
        CorruptedFileError: If the TIFF structure cannot be read
    """
    if not payload.startswith(EXIF_HEADER):
        raise CorruptedFileError('APP1 segment does not carry an EXIF header')

    tiff = payload[len(EXIF_HEADER):]
    big_endian = tiff[:2] == b'MM'

    exif = Image.Exif()
    try:
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter('always')
            exif.load(tiff)
            ifd0 = dict(exif.items())
            exif_ifd = exif.get_ifd(EXIF_IFD_POINTER)
            gps_ifd = exif.get_ifd(GPS_IFD_POINTER)

        tags = _named(ifd0, TAGS, big_endian)
        tags.update(_named(exif_ifd, TAGS, big_endian))
        gps = _named(gps_ifd, GPSTAGS, big_endian)
        gps = summarize_gps(gps) if gps else {}
    except Exception as e:
        raise CorruptedFileError(f'Malformed EXIF block ({e})') from e

    messages: List[str] = []
    for warning in caught:
        message = ' '.join(str(warning.message).split())
        if message not in messages:
            messages.append(message)

    logger.debug(f"Decoded {len(tags)} EXIF tags and {len(gps)} GPS tags")
    return ExifData(tags=tags, gps=gps, warnings=messages)
