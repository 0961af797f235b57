"""
Idempotency — exactly-once effects per caller-supplied key, via nodnod graphs.

    from orderflow import idempotency as I

    executor = (
        I.idempotent(confirm_in_unit)
        .key(lambda req: req.key)
        .target(lambda req: I.IdempotencyTarget(I.ORDER_CONFIRMATION, req.order_id))
        .ledger(I.SQLAlchemyLedger(db))
        .unit(db.unit)
        .policy(I.Policy().with_ttl(hours=24))
        .build()
    )
    result = await executor.run(request)

Key lifecycle:

    (none) ──acquire──▶ PROCESSING ──Ok──▶ COMPLETED   (body replayed verbatim)
                              │
                              └──Error──▶ FAILED       (burned unless retry_failed)

Architecture — State nodes validate, polymorphic routes:

    IdempotencySpec
         │
         ▼
    SpecNode → FetchRecordNode
                     │
         ┌───────────┴───────────────┐
         │                           │
         ▼                           ▼
    CompletedRecordNode         NoRecordNode
    PendingRecordNode                │
    FailedRecordNode                 │
    TargetMismatchNode               │
         │                           │
         └───────────┬───────────────┘
                     │
                     ▼
         IdempotencyOutcome (@polymorphic)
                     │
                     ▼
            FinalResultNode
"""

from orderflow.idempotency._types import (
    RecordState,
    IdempotencyTarget,
    ORDER_CONFIRMATION,
    IdempotencyRecord,
    IdempotencyResult,
    IdempotencyError,
    IdempotencyErrorKind,
)
from orderflow.idempotency._store import (
    Ledger,
    StoreError,
    MemoryLedger,
)
from orderflow.idempotency._sqlalchemy import SQLAlchemyLedger
from orderflow.idempotency._policy import Policy
from orderflow.idempotency._graph import (
    IdempotencySpec,
    run_idempotent,
    Outcome,
    OutcomeOk,
    OutcomeError,
    IdempotencyOutcome,
    FinalResultNode,
)
from orderflow.idempotency._builder import (
    idempotent,
    Idempotent,
    IdempotentExecutor,
)

__all__ = (
    # Types
    "RecordState",
    "IdempotencyTarget",
    "ORDER_CONFIRMATION",
    "IdempotencyRecord",
    "IdempotencyResult",
    "IdempotencyError",
    "IdempotencyErrorKind",
    # Ledger
    "Ledger",
    "StoreError",
    "MemoryLedger",
    "SQLAlchemyLedger",
    # Policy
    "Policy",
    # Spec & API
    "IdempotencySpec",
    "run_idempotent",
    # Outcome
    "Outcome",
    "OutcomeOk",
    "OutcomeError",
    "IdempotencyOutcome",
    "FinalResultNode",
    # Builder
    "idempotent",
    "Idempotent",
    "IdempotentExecutor",
)
