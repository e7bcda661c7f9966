from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Dict, Iterable, Optional, Tuple, Union
from urllib.parse import urlsplit

import httpx

from .signing import SignType

URL_BASE_DEFAULT = "https://api.mch.weixin.qq.com"
URL_BASE_HK = "https://apihk.mch.weixin.qq.com"
URL_BASE_US = "https://apius.mch.weixin.qq.com"

DEFAULT_TIMEOUT_SECONDS = 30.0


@dataclass(frozen=True)
class Credentials:
    app_id: str
    mch_id: str
    mch_key: str

    @classmethod
    def from_env(cls, prefix: str = "MCH_") -> "Credentials":
        app_id = os.getenv(f"{prefix}APP_ID", "")
        mch_id = os.getenv(f"{prefix}ID", "")
        mch_key = os.getenv(f"{prefix}KEY", "")
        if not app_id or not mch_id or not mch_key:
            raise ValueError(f"{prefix}APP_ID, {prefix}ID and {prefix}KEY are required")
        return cls(app_id=app_id, mch_id=mch_id, mch_key=mch_key)

    def __repr__(self) -> str:
        return f"Credentials(app_id={self.app_id!r}, mch_id={self.mch_id!r}, mch_key='***')"


class IdentityResolver:
    def resolve(self, app_id: str, mch_id: str) -> Optional[Credentials]:
        raise NotImplementedError


class SingleIdentityResolver(IdentityResolver):
    def __init__(self, credentials: Credentials):
        self.credentials = credentials

    def resolve(self, app_id: str, mch_id: str) -> Optional[Credentials]:
        if not app_id or not mch_id:
            return None
        if self.credentials.app_id == app_id and self.credentials.mch_id == mch_id:
            return self.credentials
        return None


class MultiIdentityResolver(IdentityResolver):
    def __init__(self, credentials: Iterable[Credentials]):
        self._table: Dict[Tuple[str, str], Credentials] = {}
        for c in credentials:
            key = (c.app_id, c.mch_id)
            if key in self._table:
                raise ValueError(f"duplicate credentials for appid={c.app_id!r} mch_id={c.mch_id!r}")
            self._table[key] = c

    def resolve(self, app_id: str, mch_id: str) -> Optional[Credentials]:
        if not app_id or not mch_id:
            return None
        return self._table.get((app_id, mch_id))


def normalize_url_base(url_base: str) -> str:
    # only scheme and host are kept
    parts = urlsplit(url_base)
    if not parts.scheme or not parts.netloc:
        raise ValueError(f"url base must have scheme and host: {url_base!r}")
    return f"{parts.scheme}://{parts.netloc}"


def new_http_client(
    cert: Optional[Union[str, Tuple[str, str]]] = None,
    verify: Union[bool, str] = True,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> httpx.Client:
    """Build the transport used when none is configured.

    ``cert`` is a client certificate (path, or ``(cert, key)`` paths); some
    endpoints such as refund require it.
    """
    return httpx.Client(cert=cert, verify=verify, timeout=timeout)


@dataclass(frozen=True)
class Options:
    """Per call or process-wide exchange options.

    Every field left unset falls through to the next level; see
    ``resolve_options``. Build the process-wide value once at startup and
    share it read-only.
    """

    http_client: Optional[httpx.Client] = None
    url_base: Optional[str] = None
    sign_type: SignType = SignType.UNSET

    def __post_init__(self) -> None:
        if self.url_base:
            object.__setattr__(self, "url_base", normalize_url_base(self.url_base))

    def with_client(self, http_client: httpx.Client) -> "Options":
        return replace(self, http_client=http_client)

    def with_url_base(self, url_base: str) -> "Options":
        return replace(self, url_base=url_base)

    def with_sign_type(self, sign_type: SignType) -> "Options":
        return replace(self, sign_type=sign_type)


@dataclass(frozen=True)
class ResolvedOptions:
    http_client: Optional[httpx.Client]
    url_base: str
    sign_type: SignType


def resolve_options(options: Optional[Options] = None, defaults: Optional[Options] = None) -> ResolvedOptions:
    """Merge call options over injected defaults over built-in constants.

    A ``None`` client in the result means the caller should use a fresh
    ``new_http_client()`` for the call.
    """
    layers = [o for o in (options, defaults) if o is not None]

    http_client: Optional[httpx.Client] = None
    for o in layers:
        if o.http_client is not None:
            http_client = o.http_client
            break

    url_base = URL_BASE_DEFAULT
    for o in layers:
        if o.url_base:
            url_base = o.url_base
            break

    sign_type = SignType.MD5
    for o in layers:
        if o.sign_type.is_valid:
            sign_type = o.sign_type
            break

    return ResolvedOptions(http_client=http_client, url_base=url_base, sign_type=sign_type)
