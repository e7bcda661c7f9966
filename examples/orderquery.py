import os

from mchxml import BusinessError, Credentials, Document, MchClient

client = MchClient(Credentials.from_env())

out_trade_no = os.getenv("OUT_TRADE_NO", "order-1")
try:
    resp = client.post("/pay/orderquery", Document({"out_trade_no": out_trade_no}))
except BusinessError as e:
    print("declined:", e.err_code, e.err_code_des)
else:
    print("trade_state:", resp.get("trade_state"))
    print("cash_fee:", resp.get_int("cash_fee"))
