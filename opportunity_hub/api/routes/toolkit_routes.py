"""
Toolkit Routes (paid course bundles)

GET /toolkits - List active toolkits
GET /toolkits/purchased - Own completed purchases
GET /toolkits/{toolkit_id} - Toolkit with lessons (bodies only for buyers and admins)
GET /toolkits/{toolkit_id}/access - Purchase state and completed lessons
POST /toolkits/{toolkit_id}/progress - Mark a lesson complete (idempotent)
POST /toolkits/{toolkit_id}/purchase - Start checkout, optionally with a coupon
POST /toolkits/{toolkit_id}/verify - Confirm payment signature
POST /coupons/validate - Preview a coupon against a toolkit price
"""

import logging
import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import text

from opportunity_hub.core.auth import get_current_user, get_optional_user, is_admin
from opportunity_hub.core.config import get_settings
from opportunity_hub.db.postgres import get_db_session
from opportunity_hub.schemas.schemas import (
    ContentItemResponse, CouponValidateRequest, ProgressRequest, PurchaseRequest,
    ToolkitResponse, VerifyPaymentRequest
)
from opportunity_hub.services.coupon_service import (
    CouponError, evaluate_coupon, final_price, redeem_coupon
)
from opportunity_hub.services.razorpay_client import (
    PaymentGatewayError, build_receipt, get_razorpay_client
)
from opportunity_hub.utils.dates import utc_now
from opportunity_hub.utils.rows import load_list

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Toolkits"])

TOOLKIT_SELECT = """
    SELECT t.id, t.title, t.description, t.price, t.original_price, t.cover_image_url,
           t.video_url, t.content_url, t.category, t.highlights, t.total_duration,
           t.show_sale_badge, t.is_active, t.created_at, t.updated_at,
           u.name AS creator_name,
           (SELECT COUNT(*) FROM toolkit_content_items ci WHERE ci.toolkit_id = t.id) AS lesson_count
    FROM toolkits t
    LEFT JOIN users u ON u.id = t.user_id
"""

CONTENT_ITEM_COLUMNS = """
    id, toolkit_id, title, type, content, video_url, order_index, created_at, updated_at
"""


def toolkit_from_row(row) -> ToolkitResponse:
    data = dict(row)
    data["highlights"] = load_list(data["highlights"])
    return ToolkitResponse(**data)


def fetch_toolkit(db, toolkit_id: str) -> Optional[dict]:
    row = db.execute(
        text(f"{TOOLKIT_SELECT} WHERE t.id = :id"),
        {"id": toolkit_id}
    ).mappings().fetchone()
    return dict(row) if row else None


def _has_purchased(db, user_id: str, toolkit_id: str) -> bool:
    row = db.execute(
        text("""
            SELECT id FROM user_toolkits
            WHERE user_id = :uid AND toolkit_id = :tid AND payment_status = 'completed'
        """),
        {"uid": user_id, "tid": toolkit_id}
    ).fetchone()
    return row is not None


def _completed_item_ids(db, user_id: str, toolkit_id: str) -> List[str]:
    rows = db.execute(
        text("SELECT content_item_id FROM user_toolkit_progress WHERE user_id = :uid AND toolkit_id = :tid"),
        {"uid": user_id, "tid": toolkit_id}
    ).fetchall()
    return [r[0] for r in rows]


@router.get("/toolkits")
async def list_toolkits():
    with get_db_session() as db:
        rows = db.execute(
            text(f"{TOOLKIT_SELECT} WHERE t.is_active = TRUE ORDER BY t.created_at DESC")
        ).mappings().fetchall()
    return {"success": True, "toolkits": [toolkit_from_row(r) for r in rows]}


@router.get("/toolkits/purchased")
async def list_purchased_toolkits(user: dict = Depends(get_current_user)):
    with get_db_session() as db:
        rows = db.execute(
            text(f"""
                {TOOLKIT_SELECT}
                WHERE t.id IN (
                    SELECT toolkit_id FROM user_toolkits
                    WHERE user_id = :uid AND payment_status = 'completed'
                )
                ORDER BY t.title
            """),
            {"uid": user["id"]}
        ).mappings().fetchall()
    return {"success": True, "toolkits": [toolkit_from_row(r) for r in rows]}


@router.get("/toolkits/{toolkit_id}")
async def get_toolkit(toolkit_id: str, user: Optional[dict] = Depends(get_optional_user)):
    """Lesson bodies and video links are withheld until purchase."""
    with get_db_session() as db:
        toolkit = fetch_toolkit(db, toolkit_id)
        if not toolkit or (not toolkit["is_active"] and not is_admin(user)):
            raise HTTPException(status_code=404, detail="Toolkit not found")

        items = db.execute(
            text(f"""
                SELECT {CONTENT_ITEM_COLUMNS} FROM toolkit_content_items
                WHERE toolkit_id = :tid ORDER BY order_index, created_at
            """),
            {"tid": toolkit_id}
        ).mappings().fetchall()

        has_purchased = False
        completed = []
        if user:
            has_purchased = _has_purchased(db, user["id"], toolkit_id)
            if has_purchased:
                completed = _completed_item_ids(db, user["id"], toolkit_id)

    can_view = has_purchased or is_admin(user)
    content_items = []
    for item in items:
        entry = ContentItemResponse(**item)
        if not can_view:
            entry.content = None
            entry.video_url = None
        content_items.append(entry)

    return {
        "toolkit": toolkit_from_row(toolkit),
        "content_items": content_items,
        "has_purchased": has_purchased,
        "completed_item_ids": completed,
    }


@router.get("/toolkits/{toolkit_id}/access")
async def get_toolkit_access(toolkit_id: str, user: Optional[dict] = Depends(get_optional_user)):
    with get_db_session() as db:
        if not fetch_toolkit(db, toolkit_id):
            raise HTTPException(status_code=404, detail="Toolkit not found")
        if not user or not _has_purchased(db, user["id"], toolkit_id):
            return {"has_purchased": False, "completed_item_ids": []}
        return {"has_purchased": True, "completed_item_ids": _completed_item_ids(db, user["id"], toolkit_id)}


@router.post("/toolkits/{toolkit_id}/progress")
async def mark_progress(toolkit_id: str, data: ProgressRequest, user: dict = Depends(get_current_user)):
    with get_db_session() as db:
        item = db.execute(
            text("SELECT id FROM toolkit_content_items WHERE id = :id AND toolkit_id = :tid"),
            {"id": data.content_item_id, "tid": toolkit_id}
        ).fetchone()
        if not item:
            raise HTTPException(status_code=404, detail="Content item not found")

        existing = db.execute(
            text("SELECT id FROM user_toolkit_progress WHERE user_id = :uid AND content_item_id = :cid"),
            {"uid": user["id"], "cid": data.content_item_id}
        ).fetchone()
        if existing:
            return {"success": True, "already_completed": True}

        db.execute(
            text("""
                INSERT INTO user_toolkit_progress (id, user_id, toolkit_id, content_item_id, completed_at)
                VALUES (:id, :uid, :tid, :cid, :now)
            """),
            {
                "id": str(uuid.uuid4()), "uid": user["id"], "tid": toolkit_id,
                "cid": data.content_item_id, "now": utc_now()
            }
        )
    return {"success": True, "already_completed": False}


@router.post("/toolkits/{toolkit_id}/purchase")
async def purchase_toolkit(toolkit_id: str, data: PurchaseRequest, user: dict = Depends(get_current_user)):
    """
    Apply the coupon (if any), create a gateway order for the final price
    and record a pending purchase. The browser completes checkout and
    calls /verify with the gateway's signature.

    The gateway call happens between two short sessions so no transaction
    is held open while waiting on the network.
    """
    with get_db_session() as db:
        toolkit = fetch_toolkit(db, toolkit_id)
        if not toolkit or not toolkit["is_active"]:
            raise HTTPException(status_code=404, detail="Toolkit not found")
        if _has_purchased(db, user["id"], toolkit_id):
            raise HTTPException(status_code=400, detail="Toolkit already purchased")

        discount_amount = 0
        coupon_id = None
        if data.coupon_code and data.coupon_code.strip():
            try:
                coupon = evaluate_coupon(db, data.coupon_code, user["id"])
            except CouponError as e:
                raise HTTPException(status_code=400, detail=str(e))
            discount_amount = coupon["discount_amount"]
            coupon_id = coupon["id"]

    amount = final_price(toolkit["price"], discount_amount)
    try:
        order = get_razorpay_client().create_order(
            amount=amount * 100, receipt=build_receipt(toolkit_id), currency="INR"
        )
    except PaymentGatewayError as e:
        raise HTTPException(status_code=502, detail=str(e))

    purchase_id = str(uuid.uuid4())
    with get_db_session() as db:
        if coupon_id:
            redeem_coupon(db, coupon_id)
        db.execute(
            text("""
                INSERT INTO user_toolkits (id, user_id, toolkit_id, razorpay_order_id, payment_status,
                    amount_paid, coupon_id, purchase_date, created_at)
                VALUES (:id, :uid, :tid, :order_id, 'pending', :amount, :coupon_id, :now, :now)
            """),
            {
                "id": purchase_id, "uid": user["id"], "tid": toolkit_id, "order_id": order["id"],
                "amount": int(order["amount"]), "coupon_id": coupon_id, "now": utc_now()
            }
        )

    logger.info("Checkout started for toolkit %s by %s (order %s)", toolkit_id, user["id"], order["id"])
    return {
        "success": True,
        "order": {"id": order["id"], "amount": order["amount"], "currency": order.get("currency", "INR")},
        "key": get_settings().razorpay_key_id,
        "purchase_id": purchase_id,
        "toolkit": toolkit_from_row(toolkit),
        "discount_amount": discount_amount,
        "final_price": amount,
    }


@router.post("/toolkits/{toolkit_id}/verify")
async def verify_payment(toolkit_id: str, data: VerifyPaymentRequest, user: dict = Depends(get_current_user)):
    if not get_razorpay_client().verify_signature(
        data.razorpay_order_id, data.razorpay_payment_id, data.razorpay_signature
    ):
        logger.warning("Invalid payment signature for order %s", data.razorpay_order_id)
        raise HTTPException(status_code=400, detail="Invalid signature")

    with get_db_session() as db:
        result = db.execute(
            text("""
                UPDATE user_toolkits SET payment_id = :payment_id, payment_status = 'completed'
                WHERE toolkit_id = :tid AND razorpay_order_id = :order_id AND user_id = :uid
            """),
            {
                "payment_id": data.razorpay_payment_id, "tid": toolkit_id,
                "order_id": data.razorpay_order_id, "uid": user["id"]
            }
        )
        if result.rowcount == 0:
            raise HTTPException(status_code=404, detail="Purchase not found")

    return {"success": True}


@router.post("/coupons/validate")
async def validate_coupon(data: CouponValidateRequest, user: Optional[dict] = Depends(get_optional_user)):
    """Coupon problems come back as 200 {valid: false, error}, an unknown toolkit as 404."""
    with get_db_session() as db:
        toolkit = db.execute(
            text("SELECT price FROM toolkits WHERE id = :id"),
            {"id": data.toolkit_id}
        ).fetchone()
        if not toolkit:
            raise HTTPException(status_code=404, detail="Toolkit not found")

        try:
            coupon = evaluate_coupon(db, data.code, user["id"] if user else None)
        except CouponError as e:
            return {"valid": False, "error": str(e)}

    return {
        "valid": True,
        "discount_amount": coupon["discount_amount"],
        "final_price": final_price(toolkit[0], coupon["discount_amount"]),
        "coupon": {"id": coupon["id"], "code": coupon["code"], "discount_amount": coupon["discount_amount"]},
    }
