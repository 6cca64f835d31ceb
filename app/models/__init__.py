from .coupon import Coupon, CouponUsage
from .error_log import ErrorLog
from .invoice import Invoice
from .order import Order
from .product import PricingPlan, UserProduct
from .security_log import SecurityLog

__all__ = [
    "Coupon",
    "CouponUsage",
    "ErrorLog",
    "Invoice",
    "Order",
    "PricingPlan",
    "SecurityLog",
    "UserProduct",
]
