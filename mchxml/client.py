from __future__ import annotations

import logging
from typing import Dict, Optional

import httpx

from .config import Credentials, Options, ResolvedOptions, new_http_client, resolve_options
from .document import Document
from .errors import (
    BusinessError,
    IdentityMismatchError,
    PreSignedRequestError,
    ReturnCodeError,
    SignatureMismatchError,
)
from .signing import SIGN_FIELD, SignType, js_pay_params, nonce_str, sign, verify

logger = logging.getLogger(__name__)

SUCCESS = "SUCCESS"
CONTENT_TYPE_XML = "application/xml"


def _send(http: httpx.Client, url: str, body: bytes) -> bytes:
    resp = http.post(url, content=body, headers={"Content-Type": CONTENT_TYPE_XML})
    logger.debug("POST %s -> %d (%d bytes)", url, resp.status_code, len(resp.content))
    return resp.content


def post_document(
    credentials: Credentials,
    path: str,
    request_doc: Document,
    options: Optional[Options] = None,
    defaults: Optional[Options] = None,
) -> Document:
    """Sign ``request_doc``, post it to ``path`` and return the verified response.

    Steps, each of which raises on failure:

      - add appid/mch_id/sign_type/nonce_str and sign
      - post, decode the response
      - check return_code (a failed return_code carries no signature)
      - verify the response signature
      - check appid/mch_id of the response
      - check result_code, raising ``BusinessError``

    Transport errors from httpx are not caught.
    """
    opts = resolve_options(options, defaults)
    sign_type = opts.sign_type

    request_doc.set("appid", credentials.app_id)
    request_doc.set("mch_id", credentials.mch_id)
    request_doc.set("sign_type", sign_type.value)
    request_doc.set("nonce_str", nonce_str(16))

    if SIGN_FIELD in request_doc:
        raise PreSignedRequestError(request_doc.get(SIGN_FIELD, ""))
    request_doc.set(SIGN_FIELD, sign(request_doc, sign_type, credentials.mch_key))

    url = opts.url_base + path
    logger.debug("posting %s with sign_type=%s", path, sign_type.value)
    body = request_doc.encode()
    if opts.http_client is not None:
        raw = _send(opts.http_client, url, body)
    else:
        with new_http_client() as http:
            raw = _send(http, url, body)

    resp_doc = Document.parse(raw)
    check_response(resp_doc, credentials, sign_type)
    return resp_doc


def check_response(resp_doc: Document, credentials: Credentials, sign_type: SignType) -> None:
    return_code = resp_doc.get("return_code", "")
    if return_code != SUCCESS:
        logger.warning("response return_code=%r return_msg=%r", return_code, resp_doc.get("return_msg", ""))
        raise ReturnCodeError(return_code, resp_doc.get("return_msg", ""))

    if not verify(resp_doc, sign_type, credentials.mch_key):
        logger.warning("response signature mismatch (sign_type=%s)", sign_type.value)
        raise SignatureMismatchError(sign(resp_doc, sign_type, credentials.mch_key), resp_doc.get(SIGN_FIELD))

    for field_name, expected in (("appid", credentials.app_id), ("mch_id", credentials.mch_id)):
        actual = resp_doc.get(field_name, "")
        if actual and actual != expected:
            logger.warning("response <%s> mismatch", field_name)
            raise IdentityMismatchError(field_name, expected, actual)

    result_code = resp_doc.get("result_code", "")
    if result_code != SUCCESS:
        raise BusinessError(result_code, resp_doc.get("err_code", ""), resp_doc.get("err_code_des", ""))


class MchClient:
    def __init__(self, credentials: Credentials, defaults: Optional[Options] = None):
        self.credentials = credentials
        self.defaults = defaults or Options()

    @property
    def options(self) -> ResolvedOptions:
        return resolve_options(None, self.defaults)

    def post(self, path: str, request_doc: Document, options: Optional[Options] = None) -> Document:
        return post_document(self.credentials, path, request_doc, options, self.defaults)

    def js_pay_params(self, prepay_id: str, sign_type: Optional[SignType] = None) -> Dict[str, str]:
        return js_pay_params(self.credentials, prepay_id, sign_type or self.options.sign_type)
