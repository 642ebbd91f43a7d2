"""Inventory services (single-location): race-safe stock movements.

Every decrement is a single conditional UPDATE (``stock = stock - n WHERE
stock >= n``); a zero row count means another checkout got there first.
No rows are locked and nothing is read before writing.
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass
from typing import Iterable, List, Optional

from catalog.models import Product, ProductVariant
from catalog.selectors import get_products, get_variants
from common.choices import MovementReason
from common.errors import DomainError
from django.db import transaction
from django.db.models import F
from django.utils import timezone

from .models import StockMovement

logger = logging.getLogger("nexu.inventory")


class MovementError(DomainError):
    """Raised when a manual stock adjustment cannot be applied."""

    code = "INVALID_MOVEMENT"


class UnknownItemError(DomainError):
    """A cart line references a product or variant that no longer exists."""

    code = "UNKNOWN_ITEM"

    def __init__(self, *, product_id=None, variant_id=None):
        self.product_id = product_id
        self.variant_id = variant_id
        if variant_id is not None:
            message = f"Unknown variant in cart: {variant_id}"
        else:
            message = f"Unknown product in cart: {product_id}"
        super().__init__(message)


class OutOfStockError(DomainError):
    """Base class for both out-of-stock shapes."""

    code = "OUT_OF_STOCK"


class InsufficientStockError(OutOfStockError):
    """Stock visibly too low before checkout started; names the items."""

    code = "INSUFFICIENT_STOCK"

    def __init__(self, names: List[str]):
        self.names = list(names)
        super().__init__("Not enough stock for: " + ", ".join(self.names))


class StockConflictError(OutOfStockError):
    """A conditional decrement matched no row: a concurrent checkout won."""

    code = "OUT_OF_STOCK"

    def __init__(self, *, product_id=None, variant_id=None):
        self.product_id = product_id
        self.variant_id = variant_id
        target = f"variant {variant_id}" if variant_id is not None else f"product {product_id}"
        super().__init__(f"One or more items sold out during checkout ({target})")


def _stock_model(variant_id):
    return ProductVariant if variant_id else Product


def _record(*, product_id, variant_id, change: int, reason: str, reference: str = "", user_id=None):
    StockMovement.objects.create(
        product_id=product_id,
        variant_id=variant_id,
        change=change,
        reason=reason,
        reference=reference,
        user_id=user_id,
    )


def _conditional_decrement(*, product_id, variant_id, quantity: int) -> int:
    model = _stock_model(variant_id)
    target_id = variant_id or product_id
    return model.objects.filter(id=target_id, stock__gte=quantity).update(
        stock=F("stock") - quantity, updated_at=timezone.now()
    )


def _increment(*, product_id, variant_id, quantity: int) -> int:
    model = _stock_model(variant_id)
    target_id = variant_id or product_id
    return model.objects.filter(id=target_id).update(stock=F("stock") + quantity, updated_at=timezone.now())


def check_availability(lines: Iterable) -> None:
    """Advisory pre-check against current stock, outside any transaction.

    Raises InsufficientStockError naming every item the cart cannot get.
    Lines need ``product_id``, ``variant_id``, ``quantity`` and ``name``;
    an optional ``variant_label`` is appended to the name.
    """

    needed = OrderedDict()
    for line in lines:
        key = (line.product_id, line.variant_id)
        label = getattr(line, "variant_label", "")
        qty, name = needed.get(key, (0, f"{line.name} ({label})" if label else line.name))
        needed[key] = (qty + int(line.quantity), name)

    variant_ids = [vid for (_, vid) in needed if vid]
    product_ids = [pid for (pid, vid) in needed if not vid]
    variant_stock = dict(ProductVariant.objects.filter(id__in=variant_ids).values_list("id", "stock"))
    product_stock = dict(Product.objects.filter(id__in=product_ids).values_list("id", "stock"))

    short = []
    for (product_id, variant_id), (qty, name) in needed.items():
        available = variant_stock.get(variant_id, 0) if variant_id else product_stock.get(product_id, 0)
        if available < qty:
            short.append(name)
    if short:
        raise InsufficientStockError(short)


@dataclass(frozen=True)
class CartIssue:
    """One problem with one cart item, as reported by ``validate_cart``."""

    UNKNOWN_ITEM = "unknown_item"
    INSUFFICIENT_STOCK = "insufficient_stock"

    kind: str
    product_id: int
    variant_id: Optional[int]
    message: str
    requested: int
    available: Optional[int] = None


def validate_cart(lines: Iterable) -> List[CartIssue]:
    """Report every item of a cart that cannot be bought as requested.

    Read-only and never raises for cart content: a product or variant that no
    longer exists (or a variant that belongs to another product) and a
    quantity above current stock each yield one issue per distinct item, in
    cart order. Repeated lines for the same item are summed. An empty result
    means the cart can go to checkout, subject to the checkout's own
    race-safe reservation.
    """

    requested = OrderedDict()
    for line in lines:
        key = (line.product_id, line.variant_id or None)
        requested[key] = requested.get(key, 0) + int(line.quantity)

    products = get_products(pid for pid, _ in requested)
    variants = get_variants(vid for _, vid in requested if vid)

    issues = []
    for (product_id, variant_id), qty in requested.items():
        product = products.get(product_id)
        variant = variants.get(variant_id) if variant_id else None
        if product is None or (variant_id and (variant is None or variant.product_id != product_id)):
            what = "variant" if product is not None else "product"
            issues.append(
                CartIssue(
                    kind=CartIssue.UNKNOWN_ITEM,
                    product_id=product_id,
                    variant_id=variant_id,
                    message=f"This {what} is no longer available.",
                    requested=qty,
                )
            )
            continue
        available = variant.stock if variant is not None else product.stock
        if available < qty:
            name = f"{product.name} ({variant.label or variant.sku})" if variant is not None else product.name
            issues.append(
                CartIssue(
                    kind=CartIssue.INSUFFICIENT_STOCK,
                    product_id=product_id,
                    variant_id=variant_id,
                    message=f"Only {max(available, 0)} of {name} in stock.",
                    requested=qty,
                    available=max(available, 0),
                )
            )
    return issues


@transaction.atomic
def reserve(lines: Iterable, *, reference: str = "", user_id: Optional[int] = None) -> None:
    """Decrement stock for every line or for none of them.

    Meant to run inside the caller's unit of work; on failure the exception
    propagates so the whole transaction, including earlier lines of this
    batch, rolls back.
    """

    for line in lines:
        quantity = int(line.quantity)
        updated = _conditional_decrement(product_id=line.product_id, variant_id=line.variant_id, quantity=quantity)
        if updated == 0:
            logger.info(
                "stock_conflict",
                extra={
                    "event": "stock_conflict",
                    "product_id": line.product_id,
                    "variant_id": line.variant_id,
                    "quantity": quantity,
                    "reference": reference,
                },
            )
            raise StockConflictError(product_id=line.product_id, variant_id=line.variant_id)
        _record(
            product_id=line.product_id,
            variant_id=line.variant_id,
            change=-quantity,
            reason=MovementReason.ORDER_PLACED,
            reference=reference,
            user_id=user_id,
        )


@transaction.atomic
def release(lines: Iterable, *, reference: str = "", user_id: Optional[int] = None) -> None:
    """Give back exactly the quantities previously reserved for ``lines``.

    Only used by order cancellation. Lines whose product or variant has since
    been deleted are skipped with a warning.
    """

    for line in lines:
        quantity = int(line.quantity)
        updated = _increment(product_id=line.product_id, variant_id=line.variant_id, quantity=quantity)
        if updated == 0:
            logger.warning(
                "stock_release_target_missing",
                extra={
                    "event": "stock_release_target_missing",
                    "product_id": line.product_id,
                    "variant_id": line.variant_id,
                    "quantity": quantity,
                    "reference": reference,
                },
            )
            continue
        _record(
            product_id=line.product_id,
            variant_id=line.variant_id,
            change=quantity,
            reason=MovementReason.ORDER_CANCELLED,
            reference=reference,
            user_id=user_id,
        )


@transaction.atomic
def adjust_stock(
    *,
    product_id: int,
    variant_id: Optional[int] = None,
    change: int,
    reason: str = MovementReason.MANUAL_ADJUSTMENT,
    reference: str = "",
    user_id: Optional[int] = None,
) -> int:
    """Apply a signed manual adjustment or restock and return the new stock.

    Negative changes use the same conditional update as checkout and never
    take stock below zero.
    """

    if change == 0:
        raise MovementError("Adjustment must be non-zero")
    if reason not in (MovementReason.MANUAL_ADJUSTMENT, MovementReason.RESTOCK):
        raise MovementError("Only manual adjustments and restocks can be applied directly")

    if variant_id:
        variant = ProductVariant.objects.filter(id=variant_id).values("product_id").first()
        if variant is None:
            raise UnknownItemError(variant_id=variant_id)
        if product_id and variant["product_id"] != product_id:
            raise MovementError("Variant does not belong to product")
        product_id = variant["product_id"]
    elif not Product.objects.filter(id=product_id).exists():
        raise UnknownItemError(product_id=product_id)

    if change < 0:
        updated = _conditional_decrement(product_id=product_id, variant_id=variant_id, quantity=-change)
        if updated == 0:
            raise MovementError("Insufficient stock for adjustment")
    else:
        _increment(product_id=product_id, variant_id=variant_id, quantity=change)

    _record(
        product_id=product_id,
        variant_id=variant_id,
        change=change,
        reason=reason,
        reference=reference,
        user_id=user_id,
    )
    model = _stock_model(variant_id)
    stock = model.objects.values_list("stock", flat=True).get(id=variant_id or product_id)
    logger.info(
        "stock_adjusted",
        extra={
            "event": "stock_adjusted",
            "product_id": product_id,
            "variant_id": variant_id,
            "change": change,
            "reason": str(reason),
            "stock": stock,
        },
    )
    return int(stock)
