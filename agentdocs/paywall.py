# agentdocs/paywall.py
"""
x402-style paywall for premium content.

Env vars:
- X402_PAYMENT_ADDRESS: recipient advertised in 402 responses
- SNIPPET_PRICE_USD (default: 0.05)
- BENCHMARK_PRICE_USD (default: 0.10)

The gateway asks accepts_payment() whether a request may proceed. Payments
are not verified on-chain: the presence of an X-Payment header is the whole
policy, and the header value is logged as the transaction reference.
"""

import os
from typing import Any, Dict, Optional

PAYMENT_HEADER = "x-payment"
X402_VERSION = "1.0"
X402_DOCS = "https://x402.org"
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

X402_PAYMENT_ADDRESS = os.getenv("X402_PAYMENT_ADDRESS", "").strip() or ZERO_ADDRESS
SNIPPET_PRICE_USD = os.getenv("SNIPPET_PRICE_USD", "0.05")
BENCHMARK_PRICE_USD = os.getenv("BENCHMARK_PRICE_USD", "0.10")

NETWORKS = ("base", "base-sepolia")
ASSET = "USDC"


def payment_required(amount: str, description: str, resource: str) -> Dict[str, Any]:
    """Body of a 402 Payment Required response."""
    return {
        "status": 402,
        "message": "Payment Required",
        "description": description,
        "resource": resource,
        "accepts": [
            {"network": network, "asset": ASSET, "amount": amount, "recipient": X402_PAYMENT_ADDRESS}
            for network in NETWORKS
        ],
        "x402_version": X402_VERSION,
        "docs": X402_DOCS,
    }


def accepts_payment(header_value: Optional[str]) -> bool:
    return bool(header_value and header_value.strip())
