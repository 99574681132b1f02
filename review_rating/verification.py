"""
QR-code purchase verification.

`SimulatedPurchaseVerifier` is a stand-in with no retailer integration: it
accepts any well-formed code and succeeds at random. It must not be treated
as proof of purchase.
"""
import random
import string
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from django.utils import timezone

from utils import errors

QR_CODE_PREFIX = "PRODUCT_"


@dataclass(frozen=True)
class PurchaseVerification:
    verified: bool
    product_id: str
    product_name: str
    purchase_date: Optional[datetime] = None
    order_id: str = ""
    retailer: str = ""
    price: Optional[int] = None
    warranty: bool = False
    simulated: bool = False

    def as_dict(self):
        return {
            "verified": self.verified,
            "productId": self.product_id,
            "productName": self.product_name,
            "purchaseDate": self.purchase_date.isoformat() if self.purchase_date else None,
            "orderId": self.order_id,
            "retailer": self.retailer,
            "price": self.price,
            "warranty": self.warranty,
            "simulated": self.simulated,
        }

    @classmethod
    def from_dict(cls, data):
        purchase_date = data.get("purchaseDate")
        return cls(
            verified=bool(data.get("verified")),
            product_id=data.get("productId", ""),
            product_name=data.get("productName", ""),
            purchase_date=datetime.fromisoformat(purchase_date) if purchase_date else None,
            order_id=data.get("orderId", ""),
            retailer=data.get("retailer", ""),
            price=data.get("price"),
            warranty=bool(data.get("warranty")),
            simulated=bool(data.get("simulated")),
        )


class PurchaseVerifier:
    def verify(self, qr_code) -> PurchaseVerification:
        qr_code = self.validate_code(qr_code)
        return self.lookup(qr_code)

    @staticmethod
    def validate_code(qr_code):
        qr_code = (qr_code or "").strip()
        if not qr_code:
            raise errors.ValidationError("QR code is required.")
        if not qr_code.startswith(QR_CODE_PREFIX):
            raise errors.ValidationError("Invalid QR code format.")
        return qr_code

    def lookup(self, qr_code) -> PurchaseVerification:
        raise NotImplementedError


class SimulatedPurchaseVerifier(PurchaseVerifier):
    SUCCESS_RATE = 0.8
    WARRANTY_RATE = 0.7
    LOOKBACK_DAYS = 90
    RETAILERS = ("Apple Store", "Amazon", "Best Buy", "Target")
    DEFAULT_PRODUCT = "iPhone 15 Pro Max"

    def __init__(self, rng=None, clock=timezone.now, catalog=None):
        self.rng = rng or random.Random()
        self.clock = clock
        self.catalog = catalog or {}

    def _order_id(self):
        alphabet = string.ascii_uppercase + string.digits
        return "ORD-" + "".join(self.rng.choice(alphabet) for _ in range(9))

    def lookup(self, qr_code) -> PurchaseVerification:
        rng = self.rng
        verified = rng.random() < self.SUCCESS_RATE
        purchase_date = self.clock() - timedelta(seconds=rng.uniform(0, self.LOOKBACK_DAYS * 24 * 3600))
        return PurchaseVerification(
            verified=verified,
            product_id=qr_code,
            product_name=self.catalog.get(qr_code, self.DEFAULT_PRODUCT),
            purchase_date=purchase_date,
            order_id=self._order_id(),
            retailer=rng.choice(self.RETAILERS),
            price=rng.randint(800, 1299),
            warranty=rng.random() < self.WARRANTY_RATE,
            simulated=True,
        )
