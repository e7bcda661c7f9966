from .client import MchClient, check_response, post_document
from .config import (
    URL_BASE_DEFAULT,
    URL_BASE_HK,
    URL_BASE_US,
    Credentials,
    IdentityResolver,
    MultiIdentityResolver,
    Options,
    SingleIdentityResolver,
    new_http_client,
    resolve_options,
)
from .crypto import decrypt_document, decrypt_field
from .document import Document
from .errors import (
    BusinessError,
    DecryptionError,
    DuplicateFieldError,
    IdentityMismatchError,
    MalformedDocumentError,
    MchXMLError,
    PreSignedRequestError,
    ProtocolError,
    ReturnCodeError,
    SignatureMismatchError,
    UnknownSignTypeError,
)
from .notify import dispatch_notification, make_handler
from .signing import SignType, extract_supplied, js_pay_params, sign, verify

__all__ = [
    "MchClient",
    "check_response",
    "post_document",
    "URL_BASE_DEFAULT",
    "URL_BASE_HK",
    "URL_BASE_US",
    "Credentials",
    "IdentityResolver",
    "MultiIdentityResolver",
    "Options",
    "SingleIdentityResolver",
    "new_http_client",
    "resolve_options",
    "decrypt_document",
    "decrypt_field",
    "Document",
    "BusinessError",
    "DecryptionError",
    "DuplicateFieldError",
    "IdentityMismatchError",
    "MalformedDocumentError",
    "MchXMLError",
    "PreSignedRequestError",
    "ProtocolError",
    "ReturnCodeError",
    "SignatureMismatchError",
    "UnknownSignTypeError",
    "dispatch_notification",
    "make_handler",
    "SignType",
    "extract_supplied",
    "js_pay_params",
    "sign",
    "verify",
]
