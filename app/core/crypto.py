import hashlib
import os

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

IV_SIZE = 16


class CipherError(ValueError):
    pass


class OtpCipher:
    """AES-256-CTR for one-time codes at rest.

    The key is the SHA-256 digest of the configured secret. Every call to
    ``encrypt`` draws a fresh IV, so the same code never encrypts to the same
    string twice. Output format is ``<iv hex>:<ciphertext hex>``.
    """

    def __init__(self, secret: str):
        if not secret:
            raise ValueError("OTP cipher secret must be non-empty")
        self._key = hashlib.sha256(secret.encode("utf-8")).digest()

    def encrypt(self, plaintext: str) -> str:
        iv = os.urandom(IV_SIZE)
        encryptor = Cipher(algorithms.AES(self._key), modes.CTR(iv)).encryptor()
        encrypted = encryptor.update(plaintext.encode("utf-8")) + encryptor.finalize()
        return f"{iv.hex()}:{encrypted.hex()}"

    def decrypt(self, token: str) -> str:
        try:
            iv_hex, encrypted_hex = token.split(":", 1)
            iv = bytes.fromhex(iv_hex)
            encrypted = bytes.fromhex(encrypted_hex)
        except ValueError as exc:
            raise CipherError("Malformed OTP ciphertext") from exc
        if len(iv) != IV_SIZE:
            raise CipherError("Malformed OTP ciphertext")

        decryptor = Cipher(algorithms.AES(self._key), modes.CTR(iv)).decryptor()
        decrypted = decryptor.update(encrypted) + decryptor.finalize()
        try:
            return decrypted.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise CipherError("OTP ciphertext does not decode") from exc
