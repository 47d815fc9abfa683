# agentdocs/payments.py
"""
Append-only payment and API usage logs, and the revenue report built on them.
"""

import datetime
import math
from collections import Counter
from typing import Any, Dict, List, Optional

from agentdocs import schemas
from agentdocs.models import utcnow
from agentdocs.store import CatalogStore

STATS_WINDOW = datetime.timedelta(hours=24)


class PaymentLedger:
    def __init__(self, store: Optional[CatalogStore] = None):
        self.store = store or CatalogStore()

    def log_payment(self, fields: Dict[str, Any]) -> int:
        req = schemas.validate(schemas.PaymentLog, fields)
        return self.store.insert_payment(req.model_dump())

    def log_usage(self, fields: Dict[str, Any]) -> int:
        req = schemas.validate(schemas.UsageLog, fields)
        return self.store.insert_api_usage({**req.model_dump(), "timestamp": utcnow()})

    def usage_for_key(self, api_key: str) -> List[Dict[str, Any]]:
        return self.store.api_usage_by_key(api_key)

    def payment_stats(self, now: Optional[datetime.datetime] = None) -> Dict[str, Any]:
        """
        Revenue totals, the trailing 24h window, and payment counts per
        endpoint.
        """
        now = now or utcnow()
        payments = self.store.list_payments()
        recent = self.store.list_payments(since=now - STATS_WINDOW)
        return {
            "total_revenue": math.fsum(p["amount_usd"] for p in payments),
            "total_payments": len(payments),
            "last_24h_revenue": math.fsum(p["amount_usd"] for p in recent),
            "last_24h_payments": len(recent),
            "by_endpoint": dict(Counter(p["endpoint"] for p in payments)),
        }
