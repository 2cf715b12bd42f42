"""
Graph — checkout computations as nodnod graphs.

    from vitrine import graph as G

    @G.node
    class GrandTotalNode:
        @classmethod
        def __compose__(cls, groups: ShopGroupsNode) -> "GrandTotalNode":
            return cls(grand_total(groups.groups))

    node = await G.run(OrderBatchNode).inject(draft).inject(quoter)
"""

from nodnod import scalar_node as node

from vitrine.graph._run import (
    TypedScope,
    Run,
    run,
)

__all__ = (
    "node",
    "TypedScope",
    "run",
    "Run",
)
