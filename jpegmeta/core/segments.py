"""JPEG marker segment scanning and fixed-layout segment parsers."""

import logging
import struct
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, BinaryIO, Dict, Generator, List, Optional, Union

from .errors import CorruptedFileError, ExtractionError, FileAccessError, NotJpegError

logger = logging.getLogger(__name__)


SOI = 0xFFD8
EOI = 0xFFD9
SOS = 0xFFDA
DQT = 0xFFDB
DRI = 0xFFDD
DHT = 0xFFC4
COM = 0xFFFE
APP0 = 0xFFE0
APP1 = 0xFFE1
APP2 = 0xFFE2
APP14 = 0xFFEE
TEM = 0xFF01

SOI_BYTES = b'\xff\xd8'

FRAME_TYPES = {
    0xFFC0: 'Baseline DCT',
    0xFFC1: 'Extended sequential DCT',
    0xFFC2: 'Progressive DCT',
    0xFFC3: 'Lossless',
    0xFFC5: 'Differential sequential DCT',
    0xFFC6: 'Differential progressive DCT',
    0xFFC7: 'Differential lossless',
    0xFFC9: 'Extended sequential DCT (arithmetic)',
    0xFFCA: 'Progressive DCT (arithmetic)',
    0xFFCB: 'Lossless (arithmetic)',
    0xFFCD: 'Differential sequential DCT (arithmetic)',
    0xFFCE: 'Differential progressive DCT (arithmetic)',
    0xFFCF: 'Differential lossless (arithmetic)',
}

PROGRESSIVE_FRAMES = frozenset([0xFFC2, 0xFFC6, 0xFFCA, 0xFFCE])

MARKER_NAMES = {
    SOI: 'SOI', EOI: 'EOI', SOS: 'SOS', DQT: 'DQT', DRI: 'DRI',
    DHT: 'DHT', COM: 'COM', TEM: 'TEM',
    0xFFCC: 'DAC', 0xFFDC: 'DNL', 0xFFDE: 'DHP', 0xFFDF: 'EXP',
}
MARKER_NAMES.update({marker: f'SOF{marker - 0xFFC0}' for marker in FRAME_TYPES})
MARKER_NAMES.update({0xFFE0 + n: f'APP{n}' for n in range(16)})
MARKER_NAMES.update({0xFFD0 + n: f'RST{n}' for n in range(8)})

# Markers without a length field
STANDALONE_MARKERS = frozenset([SOI, EOI, TEM] + [0xFFD0 + n for n in range(8)])

EXIF_HEADER = b'Exif\x00\x00'
XMP_HEADER = b'http://ns.adobe.com/xap/1.0/\x00'
ICC_HEADER = b'ICC_PROFILE\x00'
JFIF_HEADER = b'JFIF\x00'

DENSITY_UNITS = {0: 'none', 1: 'dpi', 2: 'dpcm'}
COLOR_SPACES = {1: 'Grayscale', 3: 'YCbCr', 4: 'CMYK'}


@dataclass
class Segment:
    """A single marker segment of a JPEG stream."""
    offset: int
    marker: int
    length: int
    data: bytes = b''

    @property
    def name(self) -> str:
        return MARKER_NAMES.get(self.marker, f'0x{self.marker:04X}')

    def to_dict(self) -> Dict[str, Any]:
        return {
            'marker': f'0x{self.marker:04X}',
            'name': self.name,
            'offset': self.offset,
            'length': self.length,
        }


@dataclass
class FrameHeader:
    """Contents of a start-of-frame (SOFn) segment."""
    marker: int
    precision: int
    height: int
    width: int
    components: List[Dict[str, int]] = field(default_factory=list)

    @property
    def frame_type(self) -> str:
        return FRAME_TYPES.get(self.marker, 'Unknown')

    @property
    def progressive(self) -> bool:
        return self.marker in PROGRESSIVE_FRAMES

    @property
    def color_space(self) -> str:
        count = len(self.components)
        return COLOR_SPACES.get(count, f'{count} components')


class SegmentScanner:
    """Walk the marker segments of a JPEG byte stream.

    The stream must be positioned at the start of the file. It is read
    sequentially; seeking is only needed when skipping entropy-coded data.
    """

    CHUNK_SIZE = 64 * 1024

    def __init__(self, stream: BinaryIO, chunk_size: Optional[int] = None):
        self.stream = stream
        self.position = 0
        # A chunk must hold a marker byte and the byte after it
        self.chunk_size = max(2, chunk_size or self.CHUNK_SIZE)

    def _read_exact(self, size: int, what: str) -> bytes:
        """Read exactly ``size`` bytes or fail as a truncated file."""
        data = self.stream.read(size)
        if len(data) < size:
            raise CorruptedFileError(
                f"Unexpected end of file while reading {what} at offset {self.position}"
            )
        self.position += size
        return data

    def _read_marker(self, stop_at_scan: bool) -> int:
        offset = self.position
        first = self.stream.read(1)
        if not first:
            expected = 'start of scan' if stop_at_scan else 'end of image marker'
            raise CorruptedFileError(f"File ended at offset {offset} before {expected}")
        self.position += 1

        if first[0] != 0xFF:
            raise CorruptedFileError(
                f"Expected marker at offset {offset}, found byte 0x{first[0]:02X}"
            )

        code = self._read_exact(1, 'marker')[0]
        # Any number of 0xFF fill bytes may precede a marker
        while code == 0xFF:
            code = self._read_exact(1, 'marker')[0]

        if code == 0x00:
            raise CorruptedFileError(f"Invalid marker 0xFF00 at offset {offset}")

        return 0xFF00 | code

    def _skip_entropy_data(self) -> None:
        """Skip scan data up to the next real marker.

        ``FF 00`` is a stuffed data byte, ``FF D0``-``FF D7`` are restart
        markers inside the scan and ``FF FF`` is fill; none of them end it.
        """
        while True:
            chunk_start = self.position
            chunk = self.stream.read(self.chunk_size)
            if not chunk:
                raise CorruptedFileError(
                    f"File ended inside entropy-coded data at offset {chunk_start}"
                )

            index = chunk.find(b'\xff')
            while index != -1 and index + 1 < len(chunk):
                following = chunk[index + 1]
                if following == 0x00 or following == 0xFF or 0xD0 <= following <= 0xD7:
                    index = chunk.find(b'\xff', index + 1)
                    continue
                self.position = chunk_start + index
                self.stream.seek(self.position)
                return

            if len(chunk) < self.chunk_size:
                raise CorruptedFileError(
                    f"File ended inside entropy-coded data at offset {chunk_start + len(chunk)}"
                )

            # Keep a trailing 0xFF so the byte after it is examined with it
            consumed = len(chunk) - 1 if chunk.endswith(b'\xff') else len(chunk)
            self.position = chunk_start + consumed
            self.stream.seek(self.position)

    def iter_segments(self, stop_at_scan: bool = True) -> Generator[Segment, None, None]:
        """Yield segments in file order, starting with SOI.

        Args:
            stop_at_scan: Stop after the first SOS segment instead of
                skipping the compressed data and continuing to EOI

        Yields:
            Segment objects

        Raises:
            NotJpegError: If the stream does not start with SOI
            CorruptedFileError: If the segment structure is broken
        """
        head = self.stream.read(2)
        if not starts_with_soi(head):
            raise NotJpegError('Missing JPEG start-of-image marker')
        self.position = 2
        yield Segment(offset=0, marker=SOI, length=0)

        while True:
            offset = self.position
            marker = self._read_marker(stop_at_scan)

            if marker in STANDALONE_MARKERS:
                yield Segment(offset=offset, marker=marker, length=0)
                if marker == EOI:
                    return
                continue

            name = MARKER_NAMES.get(marker, f'0x{marker:04X}')
            (length,) = struct.unpack('>H', self._read_exact(2, f'{name} length'))
            if length < 2:
                raise CorruptedFileError(
                    f"Invalid length {length} for {name} segment at offset {offset}"
                )
            data = self._read_exact(length - 2, f'{name} segment')
            yield Segment(offset=offset, marker=marker, length=length, data=data)

            if marker == SOS:
                if stop_at_scan:
                    return
                self._skip_entropy_data()


def starts_with_soi(head: bytes) -> bool:
    """Check whether leading bytes hold the SOI marker."""
    return head[:2] == SOI_BYTES


def is_jpeg(file_path: Union[str, Path]) -> bool:
    """Check whether a file starts with the JPEG SOI marker.

    Library helper for callers that only need a yes/no answer; the segment
    scanner applies the same check and raises ``NotJpegError`` instead.
    Files shorter than two bytes are simply not JPEGs. Errors opening the
    file propagate to the caller.
    """
    with open(file_path, 'rb') as f:
        return starts_with_soi(f.read(2))


def read_segments(file_path: Union[str, Path], stop_at_scan: bool = True) -> List[Segment]:
    """Open a file once and return its marker segments.

    Raises:
        FileAccessError: If the file cannot be opened or read
        NotJpegError: If the file does not start with SOI
        CorruptedFileError: If the segment structure is broken
    """
    try:
        with open(file_path, 'rb') as f:
            segments = list(SegmentScanner(f).iter_segments(stop_at_scan=stop_at_scan))
    except ExtractionError as e:
        if e.file_path is None:
            e.file_path = file_path
        raise
    except FileNotFoundError as e:
        raise FileAccessError('File not found', file_path) from e
    except PermissionError as e:
        raise FileAccessError('Permission denied', file_path) from e
    except OSError as e:
        raise FileAccessError(f'Cannot read file ({e.strerror or e})', file_path) from e
    logger.debug(f"Read {len(segments)} segments from {file_path}")
    return segments


def parse_frame_header(segment: Segment) -> FrameHeader:
    """Parse a SOFn segment.

    Raises:
        CorruptedFileError: If the segment is too short for its component count
    """
    data = segment.data
    if len(data) < 6:
        raise CorruptedFileError(f"{segment.name} segment too short at offset {segment.offset}")

    precision, height, width, count = struct.unpack('>BHHB', data[:6])
    if len(data) < 6 + 3 * count:
        raise CorruptedFileError(
            f"{segment.name} segment declares {count} components but is truncated"
        )

    components = []
    for i in range(count):
        component_id, sampling, quant_table = struct.unpack('>BBB', data[6 + 3 * i:9 + 3 * i])
        components.append({
            'id': component_id,
            'h_sampling': sampling >> 4,
            'v_sampling': sampling & 0x0F,
            'quant_table': quant_table,
        })

    return FrameHeader(
        marker=segment.marker,
        precision=precision,
        height=height,
        width=width,
        components=components,
    )


def parse_jfif(segment: Segment) -> Optional[Dict[str, Any]]:
    """Parse a JFIF APP0 segment, or return None for other APP0 data."""
    data = segment.data
    if segment.marker != APP0 or not data.startswith(JFIF_HEADER) or len(data) < 14:
        return None

    major, minor, units, x_density, y_density, thumb_w, thumb_h = struct.unpack(
        '>BBBHHBB', data[5:14]
    )
    return {
        'version': f'{major}.{minor:02d}',
        'density_units': DENSITY_UNITS.get(units, f'unknown ({units})'),
        'x_density': x_density,
        'y_density': y_density,
        'thumbnail': {'width': thumb_w, 'height': thumb_h} if thumb_w and thumb_h else None,
    }


def is_exif_segment(segment: Segment) -> bool:
    return segment.marker == APP1 and segment.data.startswith(EXIF_HEADER)


def is_xmp_segment(segment: Segment) -> bool:
    return segment.marker == APP1 and segment.data.startswith(XMP_HEADER)


def is_icc_segment(segment: Segment) -> bool:
    return segment.marker == APP2 and segment.data.startswith(ICC_HEADER)


def decode_comment(segment: Segment) -> str:
    """Decode a COM segment as text."""
    return segment.data.rstrip(b'\x00').decode('utf-8', errors='replace')
