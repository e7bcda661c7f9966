"""Inbound notification endpoints.

The gateway pushes ``<xml>`` notifications and expects HTTP 200 with a
small, unsigned ``<xml>`` acknowledgement whatever the outcome::

    <xml><return_code>SUCCESS</return_code></xml>
    <xml><return_code>FAIL</return_code><return_msg>Sign error</return_msg></xml>

``make_handler`` builds a FastAPI endpoint running the verification steps
before handing the document to application code::

    app.add_api_route("/notify/order", make_handler(on_paid, resolver), methods=["POST"])
"""
from __future__ import annotations

import inspect
import logging
from typing import Any, Awaitable, Callable, Optional, Union

from fastapi import Request, Response
from fastapi.concurrency import run_in_threadpool

from .config import IdentityResolver, Options, resolve_options
from .document import Document
from .errors import MalformedDocumentError, UnknownSignTypeError
from .signing import SignType, verify

logger = logging.getLogger(__name__)

SUCCESS = "SUCCESS"
FAIL = "FAIL"

MSG_INVALID_XML = "Invalid xml"
MSG_FAILED_RETURN_CODE = "Failed return_code"
MSG_UNKNOWN_IDENTITY = "Unknown app or mch"
MSG_UNKNOWN_SIGN_TYPE = "Unknown sign type"
MSG_SIGN_ERROR = "Sign error"

AppHandler = Callable[[Any, Document], Union[None, Awaitable[None]]]


def reply_document(success: bool, msg: str = "") -> Document:
    doc = Document()
    doc.set("return_code", SUCCESS if success else FAIL)
    if msg:
        doc.set("return_msg", msg)
    return doc


def select_sign_type(doc: Document, options: Optional[Options] = None, defaults: Optional[Options] = None) -> SignType:
    # sign_type of the notification > options > defaults > MD5
    raw = doc.get("sign_type", "")
    if raw:
        sign_type = SignType.parse(raw)
        if not sign_type.is_valid:
            raise UnknownSignTypeError(raw)
        return sign_type
    return resolve_options(options, defaults).sign_type


async def _call(app_handler: AppHandler, request: Any, doc: Document) -> None:
    if inspect.iscoroutinefunction(app_handler):
        await app_handler(request, doc)
        return
    result = await run_in_threadpool(app_handler, request, doc)
    if inspect.isawaitable(result):
        await result


async def dispatch_notification(
    body: bytes,
    request: Any,
    app_handler: AppHandler,
    resolver: Optional[IdentityResolver] = None,
    options: Optional[Options] = None,
    defaults: Optional[Options] = None,
    require_signature: bool = True,
) -> Document:
    """Run one notification through the verification steps; return the reply."""
    if require_signature and resolver is None:
        raise ValueError("an identity resolver is required to verify signatures")

    try:
        doc = Document.parse(body)
    except MalformedDocumentError as exc:
        logger.warning("rejecting notification: %s", exc)
        return reply_document(False, MSG_INVALID_XML)

    if doc.get("return_code") != SUCCESS:
        return reply_document(False, MSG_FAILED_RETURN_CODE)

    if resolver is not None:
        try:
            credentials = resolver.resolve(doc.get("appid", ""), doc.get("mch_id", ""))
        except Exception as exc:
            logger.warning("identity resolver failed: %s", exc)
            return reply_document(False, str(exc))
        if credentials is None:
            logger.warning("rejecting notification: unknown appid=%r mch_id=%r", doc.get("appid"), doc.get("mch_id"))
            return reply_document(False, MSG_UNKNOWN_IDENTITY)
        state = getattr(request, "state", None)
        if state is not None:
            state.credentials = credentials

        try:
            sign_type = select_sign_type(doc, options, defaults)
        except UnknownSignTypeError as exc:
            logger.warning("rejecting notification: %s", exc)
            return reply_document(False, MSG_UNKNOWN_SIGN_TYPE)

        if require_signature and not verify(doc, sign_type, credentials.mch_key):
            logger.warning("rejecting notification: sign error (appid=%r mch_id=%r)", credentials.app_id, credentials.mch_id)
            return reply_document(False, MSG_SIGN_ERROR)

    try:
        await _call(app_handler, request, doc)
    except Exception as exc:
        logger.info("notification handler failed: %s", exc)
        return reply_document(False, str(exc))
    return reply_document(True)


def make_handler(
    app_handler: AppHandler,
    resolver: Optional[IdentityResolver] = None,
    options: Optional[Options] = None,
    defaults: Optional[Options] = None,
    require_signature: bool = True,
) -> Callable[[Request], Awaitable[Response]]:
    if require_signature and resolver is None:
        raise ValueError("an identity resolver is required to verify signatures")

    async def endpoint(request: Request) -> Response:
        body = await request.body()
        reply = await dispatch_notification(
            body,
            request,
            app_handler,
            resolver=resolver,
            options=options,
            defaults=defaults,
            require_signature=require_signature,
        )
        return Response(content=reply.encode(), media_type="application/xml")

    return endpoint
