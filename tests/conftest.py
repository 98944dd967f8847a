"""Shared fixtures: JPEG files are generated with Pillow at test time."""

import io
import logging
import struct

import pytest
from PIL import Image


# TIFF field types
BYTE, ASCII, SHORT, LONG, RATIONAL, UNDEFINED = 1, 2, 3, 4, 5, 7


def build_segment(marker: int, payload: bytes) -> bytes:
    """Encode a marker segment with its length field."""
    return struct.pack('>HH', marker, len(payload) + 2) + payload


def insert_after_soi(jpeg: bytes, *segments: bytes) -> bytes:
    """Splice extra segments right after the SOI marker."""
    return jpeg[:2] + b''.join(segments) + jpeg[2:]


def rationals(*pairs, big_endian=False) -> bytes:
    order = '>' if big_endian else '<'
    return b''.join(struct.pack(order + 'II', num, den) for num, den in pairs)


def build_tiff(ifd0, sub_ifds=None, big_endian=False) -> bytes:
    """Build a TIFF block from (tag, type, count, raw value) entries.

    ``sub_ifds`` maps a pointer tag (0x8769, 0x8825) to the entries of the
    directory it points at. Values longer than four bytes are stored in a
    data area after the directories; shorter ones are stored inline, so a
    four-byte value with a large count acts as a raw offset.
    """
    order = '>' if big_endian else '<'
    sub_ifds = sub_ifds or {}
    directories = [list(ifd0) + [(tag, LONG, 1, None) for tag in sub_ifds]]
    directories += [list(entries) for entries in sub_ifds.values()]

    offsets = []
    position = 8
    for entries in directories:
        offsets.append(position)
        position += 2 + 12 * len(entries) + 4
    pointers = {tag: struct.pack(order + 'I', offset) for tag, offset in zip(sub_ifds, offsets[1:])}

    blocks = []
    data_area = b''
    for entries in directories:
        block = struct.pack(order + 'H', len(entries))
        for tag, field_type, count, value in entries:
            if value is None:
                value = pointers[tag]
            if len(value) > 4:
                stored = struct.pack(order + 'I', position + len(data_area))
                data_area += value
            else:
                stored = value.ljust(4, b'\x00')
            block += struct.pack(order + 'HHI', tag, field_type, count) + stored
        blocks.append(block + struct.pack(order + 'I', 0))

    header = (b'MM\x00*' if big_endian else b'II*\x00') + struct.pack(order + 'I', 8)
    return header + b''.join(blocks) + data_area


def tiff_with_gps(ref_type=ASCII) -> bytes:
    """TIFF block with Make in IFD0 and a GPS IFD at 52.5 N, 13.41 W, 12.5 m below sea level.

    With ``ref_type=BYTE`` the hemisphere references are stored as single
    BYTE values instead of ASCII strings.
    """
    def ref(letter):
        if ref_type == BYTE:
            return (BYTE, 1, letter)
        return (ASCII, 2, letter + b'\x00')

    gps = [
        (1,) + ref(b'N'),
        (2, RATIONAL, 3, rationals((52, 1), (30, 1), (0, 1))),
        (3,) + ref(b'W'),
        (4, RATIONAL, 3, rationals((13, 1), (24, 1), (36, 1))),
        (5, BYTE, 1, b'\x01'),
        (6, RATIONAL, 1, rationals((125, 10))),
    ]
    return build_tiff([(0x010F, ASCII, 6, b'Canon\x00')], {0x8825: gps})


@pytest.fixture
def camera_exif():
    exif = Image.Exif()
    exif[0x010F] = 'Canon'
    exif[0x0110] = 'Canon EOS 5D Mark IV'
    exif[0x0132] = '2023:05:01 12:34:56'
    exif[0x0112] = 6
    return exif


@pytest.fixture
def jpeg_bytes():
    """Factory returning the bytes of a freshly encoded JPEG."""
    def build(size=(64, 48), mode='RGB', **save_kwargs):
        buffer = io.BytesIO()
        Image.new(mode, size).save(buffer, 'JPEG', **save_kwargs)
        return buffer.getvalue()
    return build


@pytest.fixture
def make_jpeg(tmp_path, jpeg_bytes):
    """Factory writing a JPEG (or given bytes) under tmp_path."""
    def build(name='image.jpg', data=None, **kwargs):
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data if data is not None else jpeg_bytes(**kwargs))
        return path
    return build


@pytest.fixture
def sample_jpeg(make_jpeg, camera_exif):
    return make_jpeg('camera.jpg', exif=camera_exif)


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers bound to a previous test's captured streams."""
    yield
    logger = logging.getLogger('jpegmeta')
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
