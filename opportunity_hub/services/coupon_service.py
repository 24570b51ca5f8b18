"""
Coupon Service - coupon lookup and eligibility rules.

Codes are stored upper-case. A coupon applies when it exists, is active,
has not expired, has uses left overall and the user has not already
completed a purchase with it max_uses_per_user times.
"""

import logging
from typing import Optional

from sqlalchemy import text

from opportunity_hub.utils.dates import coerce_datetime, utc_now

logger = logging.getLogger(__name__)


class CouponError(Exception):
    """Coupon cannot be applied. The message is safe to show to users."""


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()


def final_price(price: int, discount_amount: int) -> int:
    return max(0, price - discount_amount)


def check_coupon(coupon: Optional[dict], user_uses: int = 0, now=None) -> dict:
    """
    Raise CouponError with the first failed rule, else return the coupon.
    Pure: the caller supplies the row and the user's completed uses.
    """
    if coupon is None:
        raise CouponError("Invalid coupon code")
    if not coupon["is_active"]:
        raise CouponError("Coupon is not active")

    expires_at = coerce_datetime(coupon.get("expires_at"))
    if expires_at is not None and expires_at < (now or utc_now()):
        raise CouponError("Coupon has expired")

    if coupon.get("max_uses") is not None and coupon["current_uses"] >= coupon["max_uses"]:
        raise CouponError("Coupon usage limit reached")

    if user_uses >= coupon["max_uses_per_user"]:
        raise CouponError("You have already used this coupon")

    return coupon


def find_coupon(db, code: str) -> Optional[dict]:
    row = db.execute(
        text("""
            SELECT id, code, discount_amount, max_uses, max_uses_per_user, current_uses,
                   is_active, expires_at
            FROM coupons WHERE code = :code
        """),
        {"code": normalize_code(code)}
    ).mappings().fetchone()
    return dict(row) if row else None


def count_user_uses(db, user_id: Optional[str], coupon_id: str) -> int:
    if not user_id:
        return 0
    row = db.execute(
        text("""
            SELECT COUNT(*) AS uses FROM user_toolkits
            WHERE user_id = :uid AND coupon_id = :cid AND payment_status = 'completed'
        """),
        {"uid": user_id, "cid": coupon_id}
    ).fetchone()
    return int(row[0])


def evaluate_coupon(db, code: str, user_id: Optional[str]) -> dict:
    """Look up a code and apply every rule. Raises CouponError."""
    coupon = find_coupon(db, code)
    uses = count_user_uses(db, user_id, coupon["id"]) if coupon else 0
    return check_coupon(coupon, uses)


def redeem_coupon(db, coupon_id: str) -> None:
    db.execute(
        text("UPDATE coupons SET current_uses = current_uses + 1, updated_at = :now WHERE id = :id"),
        {"id": coupon_id, "now": utc_now()}
    )
    logger.info("Coupon %s redeemed", coupon_id)
