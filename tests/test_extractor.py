import builtins
import json
import warnings
from unittest import mock

import pytest

from conftest import ASCII, BYTE, SHORT, build_segment, build_tiff, insert_after_soi, tiff_with_gps
from jpegmeta.core.errors import CorruptedFileError, FileAccessError, NotJpegError
from jpegmeta.core.extractor import MetadataExtractor
from jpegmeta.core.segments import APP1, APP2, COM, SOS


@pytest.fixture
def extractor():
    return MetadataExtractor()


def test_extract_camera_jpeg(extractor, sample_jpeg):
    metadata = extractor.extract(sample_jpeg)

    assert metadata['basic']['filename'] == 'camera.jpg'
    assert metadata['basic']['size'] == sample_jpeg.stat().st_size
    assert metadata['basic']['mime_type'] == 'image/jpeg'

    image = metadata['image']
    assert (image['width'], image['height']) == (64, 48)
    assert image['components'] == 3
    assert image['color_space'] == 'YCbCr'
    assert image['frame_type'] == 'Baseline DCT'
    assert image['progressive'] is False
    assert image['aspect_ratio'] == 1.33

    assert metadata['exif']['Make'] == 'Canon'
    assert metadata['exif']['Model'] == 'Canon EOS 5D Mark IV'
    assert metadata['exif']['DateTime'] == '2023:05:01 12:34:56'
    assert metadata['exif']['Orientation'] == 6

    assert 'jfif' in metadata
    assert metadata['segments'][0]['name'] == 'SOI'
    assert metadata['segments'][-1]['name'] == 'SOS'
    assert metadata['has_icc_profile'] is False
    assert metadata['has_xmp'] is False
    assert 'warnings' not in metadata
    assert 'gps' not in metadata

    json.dumps(metadata)


def test_plain_jpeg_has_no_exif_section(extractor, make_jpeg):
    metadata = extractor.extract(make_jpeg())
    assert 'exif' not in metadata
    assert 'image' in metadata


@pytest.mark.parametrize('mode, components, color_space', [
    ('L', 1, 'Grayscale'),
    ('RGB', 3, 'YCbCr'),
    ('CMYK', 4, 'CMYK'),
])
def test_color_space_follows_component_count(extractor, make_jpeg, mode, components, color_space):
    image = extractor.extract(make_jpeg(mode=mode))['image']
    assert image['components'] == components
    assert image['color_space'] == color_space


def test_progressive_jpeg(extractor, make_jpeg):
    image = extractor.extract(make_jpeg(progressive=True))['image']
    assert image['progressive'] is True
    assert image['frame_type'] == 'Progressive DCT'


def test_gps_section(extractor, make_jpeg, jpeg_bytes):
    data = insert_after_soi(jpeg_bytes(), build_segment(APP1, b'Exif\x00\x00' + tiff_with_gps()))
    metadata = extractor.extract(make_jpeg(data=data))

    assert metadata['exif'] == {'Make': 'Canon'}
    assert metadata['gps']['latitude'] == 52.5
    assert metadata['gps']['longitude'] == -13.41


def test_comments_xmp_and_icc_are_reported(extractor, make_jpeg, jpeg_bytes):
    data = insert_after_soi(
        jpeg_bytes(),
        build_segment(COM, b'hello world'),
        build_segment(APP1, b'http://ns.adobe.com/xap/1.0/\x00<x:xmpmeta/>'),
        build_segment(APP2, b'ICC_PROFILE\x00\x01\x01' + b'\x00' * 16),
    )
    metadata = extractor.extract(make_jpeg(data=data))

    assert metadata['comments'] == ['hello world']
    assert metadata['has_xmp'] is True
    assert metadata['has_icc_profile'] is True


def test_corrupt_exif_block_becomes_warning(extractor, make_jpeg, jpeg_bytes):
    data = insert_after_soi(jpeg_bytes(), build_segment(APP1, b'Exif\x00\x00garbage!garbage!'))
    path = make_jpeg(data=data)

    metadata = extractor.extract(path)
    assert 'exif' not in metadata
    assert metadata['image']['width'] == 64
    assert len(metadata['warnings']) == 1
    assert 'Malformed EXIF block' in metadata['warnings'][0]

    assert extractor.extract_metadata(path)['basic']['status'] == 'partial_success'


def test_missing_file(extractor, tmp_path):
    missing = tmp_path / 'missing.jpg'
    with pytest.raises(FileAccessError) as excinfo:
        extractor.extract(missing)
    assert excinfo.value.reason == 'File not found'
    assert excinfo.value.file_path == missing


def test_directory_is_rejected(extractor, tmp_path):
    with pytest.raises(FileAccessError, match='Path is not a file'):
        extractor.extract(tmp_path)


def test_non_jpeg_file(extractor, tmp_path):
    path = tmp_path / 'notes.jpg'
    path.write_text('just text')
    with pytest.raises(NotJpegError) as excinfo:
        extractor.extract(path)
    assert excinfo.value.file_path == path


def test_truncated_file(extractor, make_jpeg, jpeg_bytes):
    path = make_jpeg(data=jpeg_bytes()[:100])
    with pytest.raises(CorruptedFileError) as excinfo:
        extractor.extract(path)
    assert excinfo.value.file_path == path


def test_scan_without_frame_header(extractor, make_jpeg):
    path = make_jpeg(data=b'\xff\xd8' + build_segment(SOS, b'\x00') + b'\xff\xd9')
    with pytest.raises(CorruptedFileError, match='No frame header'):
        extractor.extract(path)


def test_file_is_opened_once(extractor, sample_jpeg):
    with mock.patch('builtins.open', wraps=builtins.open) as opened:
        extractor.extract(sample_jpeg)

    opens_of_sample = [call for call in opened.call_args_list if call.args and call.args[0] == sample_jpeg]
    assert len(opens_of_sample) == 1


def test_segments_can_be_left_out(make_jpeg):
    metadata = MetadataExtractor(include_segments=False).extract(make_jpeg())
    assert 'segments' not in metadata


def test_extract_metadata_reports_failures(extractor, tmp_path):
    result = extractor.extract_metadata(tmp_path / 'missing.jpg')

    assert result['status'] == 'extraction_failed'
    assert result['error_details']['category'] == 'file_access'
    assert result['error_details']['severity'] == 'high'
    assert result['error_details']['error_type'] == 'FileAccessError'


def test_extract_metadata_success_status(extractor, sample_jpeg):
    assert extractor.extract_metadata(sample_jpeg)['basic']['status'] == 'success'


def test_extract_batch_keeps_order_and_collects_failures(extractor, make_jpeg, tmp_path):
    first = make_jpeg('a.jpg')
    second = make_jpeg('b.jpg', size=(10, 20))
    missing = tmp_path / 'missing.jpg'
    progress = []

    records, failures = extractor.extract_batch(
        [first, missing, second],
        progress_callback=lambda done, total: progress.append((done, total)),
    )

    assert [path for path, _ in records] == [str(first), str(second)]
    assert records[1][1]['image']['height'] == 20
    assert [(path, type(error)) for path, error in failures] == [(str(missing), FileAccessError)]
    assert progress == [(1, 3), (2, 3), (3, 3)]


def test_is_supported(extractor, tmp_path):
    assert extractor.is_supported(tmp_path / 'a.JPG')
    assert extractor.is_supported(tmp_path / 'a.jfif')
    assert not extractor.is_supported(tmp_path / 'a.png')


def test_truncated_exif_block_is_reported_in_record(extractor, make_jpeg, jpeg_bytes):
    tiff = build_tiff([
        (0x0112, SHORT, 1, b'\x06\x00'),
        (0x010F, ASCII, 10, (500).to_bytes(4, 'little')),
    ])
    path = make_jpeg(data=insert_after_soi(jpeg_bytes(), build_segment(APP1, b'Exif\x00\x00' + tiff)))

    with warnings.catch_warnings():
        warnings.simplefilter('error')
        metadata = extractor.extract_metadata(path)

    assert metadata['basic']['status'] == 'partial_success'
    assert metadata['warnings']
    assert metadata['warnings'][0].startswith('EXIF block at offset 2:')
    assert 'Make' not in metadata.get('exif', {})


def test_byte_gps_refs_do_not_break_batch(extractor, make_jpeg, jpeg_bytes):
    good = make_jpeg('good.jpg')
    data = insert_after_soi(jpeg_bytes(), build_segment(APP1, b'Exif\x00\x00' + tiff_with_gps(ref_type=BYTE)))
    byte_refs = make_jpeg('byte_refs.jpg', data=data)

    records, failures = extractor.extract_batch([good, byte_refs])

    assert failures == []
    assert [path for path, _ in records] == [str(good), str(byte_refs)]
    assert records[1][1]['gps']['longitude'] == -13.41
