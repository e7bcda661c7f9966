from __future__ import annotations

from typing import Optional


class MchXMLError(Exception):
    pass


class MalformedDocumentError(MchXMLError, ValueError):
    pass


class DuplicateFieldError(MalformedDocumentError):
    def __init__(self, field_name: str):
        self.field_name = field_name
        super().__init__(f"duplicate field name <{field_name}> in document")


class PreSignedRequestError(MchXMLError, ValueError):
    def __init__(self, supplied: str):
        self.supplied = supplied
        super().__init__(f"request should not carry <sign> but got {supplied!r}")


class ProtocolError(MchXMLError):
    """Gateway answered, but the exchange itself can not be trusted."""


class ReturnCodeError(ProtocolError):
    def __init__(self, return_code: str, return_msg: str):
        self.return_code = return_code
        self.return_msg = return_msg
        super().__init__(f"return_code={return_code!r} return_msg={return_msg!r}")


class SignatureMismatchError(ProtocolError):
    def __init__(self, expected: str, supplied: Optional[str]):
        self.expected = expected
        self.supplied = supplied
        # only a prefix of the expected signature is ever rendered
        super().__init__(f"<sign> expect {expected[:8]!r}... but got {supplied!r}")


class IdentityMismatchError(ProtocolError):
    def __init__(self, field_name: str, expected: str, actual: str):
        self.field_name = field_name
        self.expected = expected
        self.actual = actual
        super().__init__(f"<{field_name}> expect {expected!r} but got {actual!r}")


class UnknownSignTypeError(ProtocolError):
    def __init__(self, value: str):
        self.value = value
        super().__init__(f"unknown sign type {value!r}")


class BusinessError(MchXMLError):
    """Verified response whose result_code reports a declined operation."""

    def __init__(self, result_code: str, err_code: str, err_code_des: str):
        self.result_code = result_code
        self.err_code = err_code
        self.err_code_des = err_code_des
        super().__init__(
            f"result_code={result_code!r} err_code={err_code!r} err_code_des={err_code_des!r}"
        )


class DecryptionError(MchXMLError):
    pass
