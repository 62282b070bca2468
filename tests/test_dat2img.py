import struct

import pytest
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from chatlogkit import dat2img
from chatlogkit.dat2img import (
    DatDecodeError,
    calculate_xor_key_v4,
    dat_to_image,
    dat_to_image_v4,
    decrypt_aes_ecb,
    scan_and_set_xor_key,
)

JPEG_IMAGE = b"\xff\xd8\xff\xe0" + bytes(range(256)) * 2 + b"\xff\xd9"
PNG_IMAGE = b"\x89PNG\r\n\x1a\n" + bytes(range(100))


@pytest.fixture(autouse=True)
def _restore_xor_key(monkeypatch):
    monkeypatch.setattr(dat2img, "V4_XOR_KEY", dat2img.V4_XOR_KEY)


def _encrypt(plain: bytes, key: bytes) -> bytes:
    padder = padding.PKCS7(128).padder()
    padded = padder.update(plain) + padder.finalize()
    encryptor = Cipher(algorithms.AES(key), modes.ECB()).encryptor()
    return encryptor.update(padded) + encryptor.finalize()


def _make_v4(image, fmt, aes_len, xor_len, xor_key):
    cipher_text = _encrypt(image[:aes_len], fmt.aes_key)
    middle = image[aes_len : len(image) - xor_len]
    tail = bytes(b ^ xor_key for b in image[len(image) - xor_len :])
    header = fmt.header + b"\x00\x00" + struct.pack("<II", aes_len, xor_len) + b"\x01"
    return header + cipher_text + middle + tail


def test_old_format_jpeg_xor_roundtrip():
    data = bytes(b ^ 0x5A for b in JPEG_IMAGE)
    assert dat_to_image(data) == (JPEG_IMAGE, "jpg")


def test_old_format_png_xor_roundtrip():
    data = bytes(b ^ 0x13 for b in PNG_IMAGE)
    assert dat_to_image(data) == (PNG_IMAGE, "png")


def test_unencrypted_bmp_is_recognised():
    image = b"BM" + bytes(20)
    assert dat_to_image(image) == (image, "bmp")


def test_too_short_data_raises():
    with pytest.raises(DatDecodeError):
        dat_to_image(b"\xff\xd8")


def test_unknown_type_raises():
    with pytest.raises(DatDecodeError, match="unknown image type"):
        dat_to_image(b"\x00\x01\x02\x03\x04\x05\x06")


def test_v4_roundtrip_with_default_key():
    data = _make_v4(JPEG_IMAGE, dat2img.V4_FORMAT1, 100, 50, dat2img.V4_XOR_KEY)
    assert dat_to_image_v4(data, dat2img.V4_FORMAT1.aes_key) == (JPEG_IMAGE, "jpg")


def test_dat_to_image_dispatches_v4():
    data = _make_v4(JPEG_IMAGE, dat2img.V4_FORMAT2, 64, 10, dat2img.V4_XOR_KEY)
    assert dat_to_image(data) == dat_to_image_v4(data, dat2img.V4_FORMAT2.aes_key)
    assert dat_to_image(data)[0] == JPEG_IMAGE


def test_v4_without_xor_tail():
    data = _make_v4(JPEG_IMAGE, dat2img.V4_FORMAT1, 32, 0, 0)
    assert dat_to_image_v4(data, dat2img.V4_FORMAT1.aes_key) == (JPEG_IMAGE, "jpg")


def test_v4_too_short_raises():
    with pytest.raises(DatDecodeError):
        dat_to_image_v4(dat2img.V4_FORMAT1.header + b"\x00" * 5, dat2img.V4_FORMAT1.aes_key)


def test_v4_unknown_type_after_decryption():
    image = b"\x00" * 80
    data = _make_v4(image, dat2img.V4_FORMAT1, 32, 8, dat2img.V4_XOR_KEY)
    with pytest.raises(DatDecodeError, match="unknown image type"):
        dat_to_image_v4(data, dat2img.V4_FORMAT1.aes_key)


def test_v4_aes_length_beyond_data_raises():
    header = dat2img.V4_FORMAT1.header + b"\x00\x00" + struct.pack("<II", 1000, 0) + b"\x01"
    with pytest.raises(DatDecodeError, match="AES decrypt error"):
        dat_to_image_v4(header + b"\x00" * 20, dat2img.V4_FORMAT1.aes_key)


def test_calculate_xor_key_v4_consistent():
    assert calculate_xor_key_v4(b"\x10\x20" + bytes([0xFF ^ 0x21, 0xD9 ^ 0x21])) == 0x21


def test_calculate_xor_key_v4_inconsistent_raises():
    with pytest.raises(DatDecodeError, match="inconsistent"):
        calculate_xor_key_v4(bytes([0xFF ^ 0x21, 0xD9 ^ 0x22]))


def test_calculate_xor_key_v4_too_short_raises():
    with pytest.raises(DatDecodeError):
        calculate_xor_key_v4(b"\xff")


def test_scan_sets_key_from_thumbnail(tmp_path):
    sub = tmp_path / "a"
    sub.mkdir()
    (sub / "ignored.dat").write_bytes(_make_v4(JPEG_IMAGE, dat2img.V4_FORMAT1, 16, 20, 0x11))
    (sub / "img_t.dat").write_bytes(_make_v4(JPEG_IMAGE, dat2img.V4_FORMAT1, 16, 20, 0x42))
    assert scan_and_set_xor_key(str(tmp_path)) == 0x42
    assert dat2img.V4_XOR_KEY == 0x42
    data = _make_v4(JPEG_IMAGE, dat2img.V4_FORMAT1, 48, 30, 0x42)
    assert dat_to_image(data) == (JPEG_IMAGE, "jpg")


def test_scan_without_thumbnails_keeps_key(tmp_path):
    before = dat2img.V4_XOR_KEY
    (tmp_path / "other_t.dat").write_bytes(b"not an image file at all")
    assert scan_and_set_xor_key(str(tmp_path)) == before


def test_scan_missing_directory_raises(tmp_path):
    with pytest.raises(OSError):
        scan_and_set_xor_key(str(tmp_path / "missing"))


def test_decrypt_aes_ecb_roundtrip():
    key = dat2img.V4_FORMAT2.aes_key
    plain = b"hello dat image data"
    assert decrypt_aes_ecb(_encrypt(plain, key), key) == plain


def test_decrypt_aes_ecb_keeps_invalid_padding():
    key = dat2img.V4_FORMAT1.aes_key
    block = b"A" * 15 + b"\x00"
    encryptor = Cipher(algorithms.AES(key), modes.ECB()).encryptor()
    cipher_text = encryptor.update(block) + encryptor.finalize()
    assert decrypt_aes_ecb(cipher_text, key) == block


def test_decrypt_aes_ecb_empty():
    assert decrypt_aes_ecb(b"", dat2img.V4_FORMAT1.aes_key) == b""


def test_decrypt_aes_ecb_bad_length_raises():
    with pytest.raises(DatDecodeError, match="multiple of block size"):
        decrypt_aes_ecb(b"\x00" * 15, dat2img.V4_FORMAT1.aes_key)


def test_decrypt_aes_ecb_bad_key_raises():
    with pytest.raises(DatDecodeError):
        decrypt_aes_ecb(b"\x00" * 16, b"short")