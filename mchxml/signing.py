from __future__ import annotations

import hashlib
import hmac
import secrets
import time
from enum import Enum
from typing import TYPE_CHECKING, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from .document import Document, unique_fields

if TYPE_CHECKING:
    from .config import Credentials

SIGN_FIELD = "sign"

Fields = Union[Document, Mapping[str, str], Iterable[Tuple[str, str]]]


class SignType(str, Enum):
    UNSET = ""
    MD5 = "MD5"
    HMAC_SHA256 = "HMAC-SHA256"

    @classmethod
    def parse(cls, value: Optional[str]) -> "SignType":
        if value == cls.MD5.value:
            return cls.MD5
        if value == cls.HMAC_SHA256.value:
            return cls.HMAC_SHA256
        return cls.UNSET

    @property
    def is_valid(self) -> bool:
        return self is not SignType.UNSET

    def or_default(self) -> "SignType":
        return self if self.is_valid else SignType.MD5

    def __str__(self) -> str:
        return self.value


def nonce_str(nbytes: int = 16) -> str:
    return secrets.token_hex(nbytes)


def _as_pairs(fields: Fields) -> Dict[str, str]:
    if isinstance(fields, Document):
        return fields.to_dict()
    if isinstance(fields, Mapping):
        return dict(fields)
    return unique_fields(fields)


def canonical_string(fields: Fields, key: str) -> str:
    pairs = _as_pairs(fields)
    parts: List[str] = []
    for name in sorted(pairs):
        value = pairs[name]
        if name == SIGN_FIELD or value == "":
            continue
        parts.append(f"{name}={value}&")
    parts.append(f"key={key}")
    return "".join(parts)


def sign(fields: Fields, sign_type: SignType, key: str) -> str:
    data = canonical_string(fields, key).encode("utf-8")
    if sign_type.or_default() is SignType.HMAC_SHA256:
        digest = hmac.new(key.encode("utf-8"), data, hashlib.sha256).hexdigest()
    else:
        digest = hashlib.md5(data).hexdigest()
    return digest.upper()


def extract_supplied(doc: Document) -> Optional[str]:
    supplied = doc.get(SIGN_FIELD)
    if not supplied:
        return None
    return supplied.upper()


def verify(doc: Document, sign_type: SignType, key: str) -> bool:
    # the raw value is compared: a lower-cased signature does not verify
    supplied = doc.get(SIGN_FIELD)
    if not supplied:
        return False
    return hmac.compare_digest(supplied.encode("utf-8"), sign(doc, sign_type, key).encode("utf-8"))


def js_pay_params(
    credentials: "Credentials",
    prepay_id: str,
    sign_type: SignType = SignType.MD5,
    timestamp: Optional[int] = None,
    nonce: Optional[str] = None,
) -> Dict[str, str]:
    """Parameters for launching payment from a web page or mini program.

    ``sign_type`` must be the one used when the prepay order was created.
    """
    if not sign_type.is_valid:
        raise ValueError(f"bad sign type {sign_type.value!r}")
    params = {
        "appId": credentials.app_id,
        "timeStamp": str(int(time.time()) if timestamp is None else timestamp),
        "nonceStr": nonce or nonce_str(8),
        "package": f"prepay_id={prepay_id}",
        "signType": sign_type.value,
    }
    params["paySign"] = sign(params, sign_type, credentials.mch_key)
    return params
