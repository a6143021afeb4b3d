from ...domain.entities import ApprovalRequest, User, UserStatus
from ...domain.ports.record_store import Collection, RecordStore
from ...domain.reconciliation import PendingRequest, reconcile


async def load_approval_requests(
    store: RecordStore,
) -> list[PendingRequest]:
    """Fetch formal requests and pending users, then reconcile them."""
    request_records = await store.fetch_all(Collection.APPROVAL_REQUESTS)
    pending_records = await store.fetch_all(
        Collection.USERS, {"status": [UserStatus.PENDING_ADMIN.value]}
    )

    user_ids = sorted({str(record["user_id"]) for record in request_records})
    summaries = {}
    if user_ids:
        owner_records = await store.fetch_all(Collection.USERS, {"id": user_ids})
        summaries = {
            owner.id: owner.summary()
            for owner in (User.from_record(record) for record in owner_records)
        }

    formal = [
        ApprovalRequest.from_record(record, user=summaries.get(str(record["user_id"])))
        for record in request_records
    ]
    pending_users = [User.from_record(record) for record in pending_records]
    return reconcile(formal, pending_users)
