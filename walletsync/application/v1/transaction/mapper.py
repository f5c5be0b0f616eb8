import datetime
import uuid
from typing import Iterable, Optional

from walletsync.domain.ledger.entity import BridgeTransaction
from walletsync.domain.transaction.entity import Transaction as TransactionEntity
from walletsync.shared.utils.validators import parse_timestamp, utcnow


def derive_bridge_transaction_id(bridge_wallet_id: str, record: BridgeTransaction) -> str:
    """
    Local dedupe key for a provider history record.

    History entries carry no id of their own, so the key is built from the
    wallet, the raw created_at string and the raw amount string. Two records
    sharing all three collapse onto one key and only the first is stored.
    """
    return f"{bridge_wallet_id}_{record.created_at}_{record.amount}"


def map_bridge_transaction(
    record: BridgeTransaction, wallet_id: str, bridge_transaction_id: str
) -> TransactionEntity:
    source = record.source
    destination = record.destination

    return TransactionEntity(
        id=str(uuid.uuid4()),
        bridge_transaction_id=bridge_transaction_id,
        wallet_id=wallet_id,
        amount=record.amount,
        developer_fee=record.developer_fee or None,
        customer_id=record.customer_id,
        source_payment_rail=source.payment_rail if source else None,
        source_currency=source.currency if source else None,
        destination_payment_rail=destination.payment_rail if destination else None,
        destination_currency=destination.currency if destination else None,
        bridge_created_at=parse_timestamp(record.created_at),
        bridge_updated_at=parse_timestamp(record.updated_at),
        bridge_raw_data=record.raw_payload(),
        created_at=utcnow(),
    )


def compute_watermark(
    records: Iterable[BridgeTransaction], previous: Optional[datetime.datetime]
) -> Optional[datetime.datetime]:
    """Newest provider created_at seen so far. Never moves backwards."""
    watermark = previous
    for record in records:
        created_at = parse_timestamp(record.created_at)
        if watermark is None or created_at > watermark:
            watermark = created_at
    return watermark
