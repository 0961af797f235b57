"""
Graph — declarative decision graphs over nodnod.

    from orderflow import graph as G

    @G.node
    class FetchRecordNode:
        @classmethod
        async def __compose__(cls, spec_node: SpecNode) -> "FetchRecordNode":
            return cls(await spec_node.spec.ledger.get(spec_node.spec.key))

    final = await G.run(FinalResultNode).inject(spec)

Used by the idempotency state machine: each record state is a node that
either validates or raises NodeError, and a polymorphic node routes on
whichever state validated.
"""

from nodnod import scalar_node as node

from orderflow.graph._run import Run, run

__all__ = (
    "node",
    "Run",
    "run",
)
