import httpx
import pytest

from mchxml import (
    BusinessError,
    Credentials,
    Document,
    DuplicateFieldError,
    IdentityMismatchError,
    MalformedDocumentError,
    MchClient,
    Options,
    PreSignedRequestError,
    ProtocolError,
    ReturnCodeError,
    SignatureMismatchError,
    SignType,
    post_document,
    sign,
    verify,
)

CREDS = Credentials(app_id="wxd930ea5d5a258f4f", mch_id="10000100", mch_key="192006250b4c09247ec02edce69f6a2d")


def _signed(fields: dict, sign_type: SignType = SignType.MD5, key: str = CREDS.mch_key) -> bytes:
    doc = Document(fields)
    doc.set("sign", sign(doc, sign_type, key))
    return doc.encode()


def _ok_fields(**extra) -> dict:
    fields = {
        "return_code": "SUCCESS",
        "appid": CREDS.app_id,
        "mch_id": CREDS.mch_id,
        "result_code": "SUCCESS",
    }
    fields.update(extra)
    return fields


def _client_returning(body: bytes, captured: dict = None) -> httpx.Client:
    def handler(req: httpx.Request) -> httpx.Response:
        if captured is not None:
            captured["url"] = str(req.url)
            captured["headers"] = req.headers
            captured["doc"] = Document.parse(req.content)
        return httpx.Response(200, content=body)

    return httpx.Client(transport=httpx.MockTransport(handler))


def _post(body: bytes) -> Document:
    return post_document(CREDS, "/pay/orderquery", Document(), Options(http_client=_client_returning(body)))


def test_post_success_and_request_shape():
    captured = {}
    resp_body = _signed(_ok_fields(trade_state="SUCCESS"))
    req = Document({"out_trade_no": "o1"})
    out = post_document(CREDS, "/pay/orderquery", req, Options(http_client=_client_returning(resp_body, captured)))

    assert out.get("trade_state") == "SUCCESS"
    assert captured["url"] == "https://api.mch.weixin.qq.com/pay/orderquery"
    assert captured["headers"]["content-type"] == "application/xml"

    sent = captured["doc"]
    assert sent.get("out_trade_no") == "o1"
    assert sent.get("appid") == CREDS.app_id
    assert sent.get("mch_id") == CREDS.mch_id
    assert sent.get("sign_type") == "MD5"
    assert len(sent.get("nonce_str")) == 32
    assert verify(sent, SignType.MD5, CREDS.mch_key)


def test_post_known_vector_success():
    body = b"""<xml>
    <appid><![CDATA[wxd930ea5d5a258f4f]]></appid>
    <mch_id><![CDATA[10000100]]></mch_id>
    <result_code><![CDATA[SUCCESS]]></result_code>
    <return_code><![CDATA[SUCCESS]]></return_code>
    <sign>12918CCB221CC80C0961BCC5903F5B25</sign>
    </xml>"""
    assert _post(body).get("result_code") == "SUCCESS"


def test_post_overwrites_common_fields():
    captured = {}
    req = Document({"appid": "other", "nonce_str": "fixed"})
    post_document(CREDS, "/x", req, Options(http_client=_client_returning(_signed(_ok_fields()), captured)))
    assert captured["doc"].get("appid") == CREDS.app_id
    assert captured["doc"].get("nonce_str") != "fixed"


def test_post_rejects_presigned_request():
    calls = {"n": 0}

    def handler(req: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        return httpx.Response(200, content=b"<xml/>")

    req = Document({"sign": "ABC"})
    with pytest.raises(PreSignedRequestError):
        post_document(CREDS, "/x", req, Options(http_client=httpx.Client(transport=httpx.MockTransport(handler))))
    assert calls["n"] == 0


@pytest.mark.parametrize(
    "body",
    [
        b"<xml></notxml>",
        b"<notxml></notxml>",
        b"",
    ],
)
def test_post_malformed_response(body):
    with pytest.raises(MalformedDocumentError):
        _post(body)


def test_post_duplicate_field_response():
    with pytest.raises(DuplicateFieldError):
        _post(b"<xml><return_code>SUCCESS</return_code><return_code>SUCCESS</return_code></xml>")


@pytest.mark.parametrize(
    "body",
    [
        b"<xml></xml>",
        b"<xml><return_code>XX</return_code></xml>",
        b"<xml><return_code>FAIL</return_code><return_msg>bad sign</return_msg></xml>",
    ],
)
def test_post_failed_return_code_without_sign(body):
    with pytest.raises(ReturnCodeError) as ex:
        _post(body)
    if b"FAIL" in body:
        assert ex.value.return_code == "FAIL"
        assert ex.value.return_msg == "bad sign"


@pytest.mark.parametrize(
    "body",
    [
        b"<xml><return_code>SUCCESS</return_code></xml>",
        b"<xml><return_code>SUCCESS</return_code><sign>2C2B2A1D626E750FCFD0ED661E80E3AB</sign></xml>",
    ],
)
def test_post_signature_mismatch(body):
    with pytest.raises(SignatureMismatchError):
        _post(body)


def test_post_lowercase_signature_rejected():
    doc = Document(_ok_fields())
    doc.set("sign", sign(doc, SignType.MD5, CREDS.mch_key).lower())
    with pytest.raises(SignatureMismatchError):
        _post(doc.encode())


def test_post_response_signed_with_other_algorithm_rejected():
    with pytest.raises(SignatureMismatchError):
        _post(_signed(_ok_fields(), SignType.HMAC_SHA256))


def test_post_hmac_sign_type_from_options():
    captured = {}
    opts = Options(http_client=_client_returning(_signed(_ok_fields(), SignType.HMAC_SHA256), captured), sign_type=SignType.HMAC_SHA256)
    post_document(CREDS, "/x", Document(), opts)
    assert captured["doc"].get("sign_type") == "HMAC-SHA256"
    assert len(captured["doc"].get("sign")) == 64


@pytest.mark.parametrize(
    "field_name,value",
    [("appid", "wxd930ea5d5a258f40"), ("mch_id", "10000101")],
)
def test_post_identity_mismatch(field_name, value):
    with pytest.raises(IdentityMismatchError) as ex:
        _post(_signed(_ok_fields(**{field_name: value})))
    assert ex.value.field_name == field_name
    assert ex.value.actual == value


def test_post_identity_fields_optional():
    fields = {"return_code": "SUCCESS", "result_code": "SUCCESS"}
    assert _post(_signed(fields)).get("result_code") == "SUCCESS"


def test_post_business_error_is_not_protocol_error():
    body = _signed(_ok_fields(result_code="FAIL", err_code="ORDERNOTEXIST", err_code_des="no such order"))
    with pytest.raises(BusinessError) as ex:
        _post(body)
    assert not isinstance(ex.value, ProtocolError)
    assert ex.value.result_code == "FAIL"
    assert ex.value.err_code == "ORDERNOTEXIST"
    assert ex.value.err_code_des == "no such order"


def test_post_missing_result_code_is_business_error():
    with pytest.raises(BusinessError) as ex:
        _post(_signed({"return_code": "SUCCESS"}))
    assert ex.value.result_code == ""


def test_post_transport_error_propagates():
    def handler(req: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=req)

    with pytest.raises(httpx.ConnectError):
        post_document(CREDS, "/x", Document(), Options(http_client=httpx.Client(transport=httpx.MockTransport(handler))))


def test_post_timeout_propagates():
    def handler(req: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=req)

    with pytest.raises(httpx.TimeoutException):
        post_document(CREDS, "/x", Document(), Options(http_client=httpx.Client(transport=httpx.MockTransport(handler))))


def test_client_precedence_call_over_defaults():
    default_hits = {"n": 0}

    def default_handler(req: httpx.Request) -> httpx.Response:
        default_hits["n"] += 1
        return httpx.Response(200, content=_signed(_ok_fields()))

    captured = {}
    defaults = Options(
        http_client=httpx.Client(transport=httpx.MockTransport(default_handler)),
        url_base="https://apihk.mch.weixin.qq.com/ignored/path",
    )
    c = MchClient(CREDS, defaults=defaults)

    c.post("/a", Document())
    assert default_hits["n"] == 1

    call = Options(http_client=_client_returning(_signed(_ok_fields()), captured), url_base="https://sandbox.example.com")
    c.post("/b", Document(), call)
    assert default_hits["n"] == 1
    assert captured["url"] == "https://sandbox.example.com/b"


def test_client_uses_default_url_base_from_defaults():
    captured = {}
    defaults = Options(http_client=_client_returning(_signed(_ok_fields()), captured), url_base="https://apius.mch.weixin.qq.com")
    MchClient(CREDS, defaults=defaults).post("/pay/closeorder", Document({"out_trade_no": "o1"}))
    assert captured["url"] == "https://apius.mch.weixin.qq.com/pay/closeorder"


def test_client_js_pay_params_uses_default_sign_type():
    c = MchClient(CREDS, defaults=Options(sign_type=SignType.HMAC_SHA256))
    params = c.js_pay_params("prepay_1")
    assert params["signType"] == "HMAC-SHA256"
    assert params["appId"] == CREDS.app_id
