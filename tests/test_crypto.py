import pytest

from app.core.crypto import CipherError, OtpCipher


def test_decrypt_returns_original_code(cipher):
    for code in ("1000", "4821", "9999"):
        assert cipher.decrypt(cipher.encrypt(code)) == code


def test_same_code_encrypts_differently_each_time(cipher):
    first = cipher.encrypt("1234")
    second = cipher.encrypt("1234")

    assert first != second
    assert first.split(":")[0] != second.split(":")[0]


def test_ciphertext_format_is_iv_and_payload_hex(cipher):
    iv_hex, payload_hex = cipher.encrypt("1234").split(":")

    assert len(iv_hex) == 32
    assert len(payload_hex) == 8
    bytes.fromhex(iv_hex)
    bytes.fromhex(payload_hex)


def test_ciphertext_does_not_contain_plaintext(cipher):
    assert "5678" not in cipher.encrypt("5678")


def test_other_secret_cannot_read_code(cipher):
    token = cipher.encrypt("4321")
    other = OtpCipher("a-different-secret")

    try:
        result = other.decrypt(token)
    except CipherError:
        result = None

    assert result != "4321"


@pytest.mark.parametrize("token", ["", "no-separator", "zz:00", "00ff:abcd"])
def test_malformed_ciphertext_raises(cipher, token):
    with pytest.raises(CipherError):
        cipher.decrypt(token)


def test_empty_secret_is_rejected():
    with pytest.raises(ValueError):
        OtpCipher("")
