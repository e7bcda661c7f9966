from __future__ import annotations

import logging

from fastapi import FastAPI, Request

from mchxml import Credentials, Document, SingleIdentityResolver, decrypt_field, make_handler

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

credentials = Credentials.from_env()
resolver = SingleIdentityResolver(credentials)


def on_paid(request: Request, doc: Document) -> None:
    logger.info("paid out_trade_no=%s total_fee=%s", doc.get("out_trade_no"), doc.get_int("total_fee"))


def on_refund(request: Request, doc: Document) -> None:
    # refund notifications are not signed; the payload is encrypted with the merchant key
    info = decrypt_field(doc, request.state.credentials.mch_key)
    logger.info("refund out_refund_no=%s status=%s", info.get("out_refund_no"), info.get("refund_status"))


app = FastAPI()
app.add_api_route("/notify/order", make_handler(on_paid, resolver), methods=["POST"])
app.add_api_route("/notify/refund", make_handler(on_refund, resolver, require_signature=False), methods=["POST"])
