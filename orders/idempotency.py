"""Request idempotency for order mutations.

A client sends an ``Idempotency-Key`` header; the first response for that
key (per caller scope, path and method) is stored and replayed on retries.
"""

import hashlib
import json
import logging
from datetime import timedelta
from typing import Callable, Optional, Tuple

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from .models import IdempotencyKey

logger = logging.getLogger("nexu.orders")


def with_idempotency(
    *,
    key: str,
    user,
    path: str,
    method: str,
    handler: Callable[[], Tuple[dict, int]],
    request_hash: Optional[str] = None,
) -> Tuple[dict, int]:
    """Run handler idempotently and persist its response for the given key and scope.

    - Scope is derived from the caller: for authenticated users, "user:<id>"; otherwise "anon".
    - If a record exists and the stored `request_hash` differs from the provided one, returns 409.
    - If a record exists but response is not yet stored, returns 409 to indicate in-progress.
    - If the handler raises, the record is dropped so the client can retry with the same key.
    """

    user_id = getattr(user, "id", None)
    scope = f"user:{user_id}" if user_id else "anon"
    method = str(method).upper()
    path = str(path)
    ttl = int(getattr(settings, "IDEMPOTENCY_TTL_HOURS", 24))

    try:
        with transaction.atomic():
            idem = IdempotencyKey.objects.create(
                key=key,
                user_id=user_id,
                scope=scope,
                path=path,
                method=method,
                request_hash=request_hash,
                expires_at=timezone.now() + timedelta(hours=ttl),
            )
    except IntegrityError:
        idem = IdempotencyKey.objects.get(key=key, scope=scope, path=path, method=method)
        # Guard against key reuse with different fingerprints
        if idem.request_hash and request_hash and idem.request_hash != request_hash:
            body = {"detail": "Idempotency key reused with different request payload", "code": "IDEMPOTENCY_MISMATCH"}
            return body, 409
        if idem.response_json is not None and idem.response_code is not None:
            logger.info("idempotent_replay", extra={"event": "idempotent_replay", "key": key, "path": path})
            return idem.response_json, int(idem.response_code)
        return {"detail": "Request in progress", "code": "IDEMPOTENCY_IN_PROGRESS"}, 409

    try:
        body, code = handler()
    except Exception:
        IdempotencyKey.objects.filter(id=idem.id).delete()
        raise

    IdempotencyKey.objects.filter(id=idem.id).update(response_json=body, response_code=code)
    return body, code


def compute_request_hash(data) -> Optional[str]:
    """Compute a canonical SHA256 hash of the request body.

    Uses sorted keys JSON representation to stabilize the hash across equivalent payloads.
    Returns None when data is falsy.
    """
    if not data:
        return None
    try:
        payload = json.dumps(data, sort_keys=True, separators=(",", ":"), default=str)
    except (TypeError, ValueError):
        return None
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()
