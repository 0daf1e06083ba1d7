"""Configuration for the transfer console."""

import os

SERVER_URL = os.environ.get("TRANSFERCONSOLE_SERVER", "http://localhost:3000")
EXPLORER_TX_URL = os.environ.get(
    "TRANSFERCONSOLE_EXPLORER_TX_URL", "https://etherscan.io/tx/"
)
CONNECT_TIMEOUT = float(os.environ.get("TRANSFERCONSOLE_CONNECT_TIMEOUT", "10"))
REQUEST_TIMEOUT = float(os.environ.get("TRANSFERCONSOLE_REQUEST_TIMEOUT", "30"))

SEND_PATH = "/api/send"
EVENTS_PATH = "/api/events/{session_id}"
END_EVENT = "end"

# CLI option name -> submission payload key
FORM_FIELDS = {
    "private_key": "privateKey",
    "rpc_url": "rpcUrl",
    "token_address": "tokenAddress",
    "recipient": "recipient",
    "amount": "amount",
    "batch_size": "batchSize",
    "gas_price": "gasPrice",
    "gas_limit": "gasLimit",
}

READY_MESSAGE = (
    "Ready. Fill in the transfer options with your mainnet configuration. "
    "Values left blank fall back to the server .env file."
)


def build_payload(fields: dict[str, str | None]) -> dict[str, str]:
    """Trim form values and drop empty ones, keyed by payload name."""
    payload = {}
    for name, value in fields.items():
        if value is None:
            continue
        trimmed = str(value).strip()
        if not trimmed:
            continue
        payload[FORM_FIELDS.get(name, name)] = trimmed
    return payload


def explorer_tx_link(tx_hash: str, base_url: str | None = None) -> str:
    """Block-explorer URL for a transaction hash."""
    base = base_url or EXPLORER_TX_URL
    if not base.endswith("/"):
        base += "/"
    return f"{base}{tx_hash}"
