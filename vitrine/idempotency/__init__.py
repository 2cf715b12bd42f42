"""
Idempotency — replay-safe order placement.

    from vitrine import idempotency as I

    executor = (
        I.idempotent(place)
        .key(lambda sub: sub.idempotency_key)
        .fingerprint(lambda sub: sub.fingerprint())
        .store(I.MemoryStore())
        .policy(I.Policy().with_ttl(hours=24))
        .build()
    )
    match await executor.run(submission):
        case Ok(replay):
            replay.from_cache   # True on a resubmission
        case Error(ConflictError()):
            ...                 # key reused for another cart

Decision graph:

    FetchRecordNode
         ├── CompletedRecordNode ─┐
         ├── PendingRecordNode ───┼── IdempotencyOutcome ── FinalResultNode
         └── NoRecordNode ────────┘
"""

from vitrine.idempotency._types import (
    RecordState,
    IdempotencyRecord,
    Replay,
)
from vitrine.idempotency._store import (
    Store,
    StoreAny,
    MemoryStore,
)
from vitrine.idempotency._policy import (
    Policy,
    OnPending,
    WAIT,
    FAIL,
)
from vitrine.idempotency._graph import (
    IdempotencySpec,
    run_idempotent,
)
from vitrine.idempotency._builder import (
    idempotent,
    Idempotent,
    IdempotentExecutor,
)
from vitrine.idempotency._sqlalchemy import (
    IdempotencyMixin,
    IdempotentModel,
    SQLAlchemyStore,
)

__all__ = (
    # Types
    "RecordState",
    "IdempotencyRecord",
    "Replay",
    # Store
    "Store",
    "StoreAny",
    "MemoryStore",
    # Policy
    "Policy",
    "OnPending",
    "WAIT",
    "FAIL",
    # Graph
    "IdempotencySpec",
    "run_idempotent",
    # Builder
    "idempotent",
    "Idempotent",
    "IdempotentExecutor",
    # SQLAlchemy
    "IdempotencyMixin",
    "IdempotentModel",
    "SQLAlchemyStore",
)
