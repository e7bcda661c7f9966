from __future__ import annotations

import base64
import binascii
import hashlib

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from .document import Document
from .errors import DecryptionError

BLOCK_SIZE = 16


def cipher_key(mch_key: str) -> bytes:
    # the 32 lowercase hex characters are the AES-256 key, not the digest bytes
    return hashlib.md5(mch_key.encode("utf-8")).hexdigest().lower().encode("ascii")


def decrypt_document(mch_key: str, ciphertext: str) -> Document:
    """Decrypt an AES-256-ECB, PKCS#7 padded and base64 encoded document.

    Used for encrypted notification payloads such as ``req_info`` in refund
    result notifications.
    """
    try:
        data = base64.b64decode(ciphertext.replace("\r", "").replace("\n", ""), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise DecryptionError(f"invalid base64 cipher text: {exc}") from exc
    if not data:
        raise DecryptionError("empty cipher text")
    if len(data) % BLOCK_SIZE != 0:
        raise DecryptionError(f"cipher text length {len(data)} is not a multiple of block size {BLOCK_SIZE}")

    decryptor = Cipher(algorithms.AES(cipher_key(mch_key)), modes.ECB()).decryptor()
    plain = decryptor.update(data) + decryptor.finalize()

    pad = plain[-1]
    if pad > BLOCK_SIZE:
        raise DecryptionError(f"padding byte {pad} bigger than block size {BLOCK_SIZE}")
    return Document.parse(plain[: len(plain) - pad])


def decrypt_field(doc: Document, mch_key: str, name: str = "req_info") -> Document:
    ciphertext = doc.get(name)
    if not ciphertext:
        raise DecryptionError(f"missing encrypted field <{name}>")
    return decrypt_document(mch_key, ciphertext)
