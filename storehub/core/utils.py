import json
import uuid
import random
import hashlib
from datetime import timedelta

from django.conf import settings
from django.core.exceptions import ObjectDoesNotExist, ValidationError as DjangoValidationError
from django.db import IntegrityError, transaction
from django.utils import timezone

from core.errors import ResourceNotFound, ValidationFailed
from core.models import IdempotencyKey


def page_params(query, max_limit: int = 100):
    """
    Read `page` / `limit` from a query dict.
    Returns (page, limit, offset) with page >= 1 and 1 <= limit <= max_limit.
    """
    def _int(name, default):
        try:
            return int(query.get(name, default))
        except (TypeError, ValueError):
            return default

    page = max(1, _int('page', 1))
    limit = min(max_limit, max(1, _int('limit', 20)))
    return page, limit, (page - 1) * limit


def generate_order_number(now=None) -> str:
    """
    Human-facing order number, e.g. ORD-20251124-4821.
    Date prefix + 4 random digits: unique enough for tracking, not guaranteed unique.
    """
    now = now or timezone.now()
    return f"ORD-{now:%Y%m%d}-{random.randint(1000, 9999)}"


def generate_request_hash(data) -> str:
    """
    Generates a consistent hash of the request data for validation.
    Complex values (UUID, datetime) are serialized with str() and keys are
    sorted, so identical payloads always hash the same.
    """
    data_string = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(data_string.encode('utf-8')).hexdigest()


def _is_abandoned(key_instance) -> bool:
    ttl = timedelta(seconds=settings.IDEMPOTENCY_PENDING_TTL_SECONDS)
    return key_instance.created_at <= timezone.now() - ttl


def handle_idempotency(idempotency_key: str, request_data, _retried: bool = False):
    """
    Checks for an existing key or reserves a new one transactionally.
    Returns (result, status) where status is one of:
      NO_KEY   - no key supplied, process normally
      MISS     - key reserved, result is the PENDING IdempotencyKey
      HIT      - result is the stored response body
      CONFLICT - result is an error message (different payload, or still in flight)
    A PENDING reservation older than IDEMPOTENCY_PENDING_TTL_SECONDS is treated as
    abandoned and handed to the new request.
    """
    if not idempotency_key:
        return None, 'NO_KEY'

    request_hash = generate_request_hash(request_data)

    existing_key = IdempotencyKey.objects.filter(key=idempotency_key).first()
    if existing_key is not None:
        if request_hash != existing_key.metadata.get('request_hash'):
            return 'Idempotency key reused with different payload', 'CONFLICT'
        if existing_key.metadata.get('status') == 'COMPLETED':
            return existing_key.metadata.get('response'), 'HIT'
        if not _is_abandoned(existing_key):
            return 'A request with this idempotency key is still being processed', 'CONFLICT'
        # The reserving request never finished; let this one claim the key afresh.
        IdempotencyKey.objects.filter(pk=existing_key.pk).delete()

    try:
        with transaction.atomic():
            new_key = IdempotencyKey.objects.create(
                key=idempotency_key,
                metadata={'status': 'PENDING', 'request_hash': request_hash},
            )
        return new_key, 'MISS'
    except IntegrityError:
        # Created by a concurrent request between the lookup and the insert.
        if _retried:
            raise
        return handle_idempotency(idempotency_key, request_data, _retried=True)


def finalize_idempotency(idempotency_key_instance, response_body: dict):
    """Stores the final response on a reserved key so replays can be answered from it."""
    if idempotency_key_instance is None:
        return
    idempotency_key_instance.metadata = {
        **idempotency_key_instance.metadata,
        'status': 'COMPLETED',
        'response': json.loads(json.dumps(response_body, default=str)),
    }
    idempotency_key_instance.save(update_fields=['metadata'])


def release_idempotency(idempotency_key_instance):
    """Drops a reservation whose request failed, so the client can retry with the same key."""
    if idempotency_key_instance is not None:
        IdempotencyKey.objects.filter(pk=idempotency_key_instance.pk).delete()


def parse_uuid(value, label: str = 'id') -> uuid.UUID:
    """Coerce a client-supplied identifier, failing validation rather than the query."""
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        raise ValidationFailed(f'{label} is not a valid identifier.')


def load_or_404(queryset, pk, label: str):
    try:
        return queryset.get(pk=pk)
    except (ObjectDoesNotExist, DjangoValidationError, ValueError):
        raise ResourceNotFound(f'{label} not found')
