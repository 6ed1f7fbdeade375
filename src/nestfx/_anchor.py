"""Node arena — plain structures holding the state of SubscriptionNodes.

Nodes are thin handles holding an _id. Their live state (the object they
observe, the disposer of that subscription and a generation counter bumped on
every rewire) lives in the NodeArena of the tree that owns them, so a callback
that outlived its subscription can compare generations and ignore itself.

Each tree owns its arena. Dropping a tree drops everything it observed.
"""

import itertools

# ID generation — itertools.count is thread-safe (C-level GIL atomic)
_id_counter = itertools.count(1)


class NodeArena:
    __slots__ = ("observed", "disposers", "generations")

    def __init__(self) -> None:
        self.observed: dict[int, object] = {}  # node_id -> currently observed object (or None)
        self.disposers: dict[int, object] = {}  # node_id -> Disposer for that object's subscription
        self.generations: dict[int, int] = {}  # node_id -> bumped on every rewire

    def new_id(self) -> int:
        node_id = next(_id_counter)
        self.observed[node_id] = None
        self.disposers[node_id] = None
        self.generations[node_id] = 0
        return node_id

    def release(self, node_id: int) -> None:
        """Forget a node. Its pending callbacks will find it gone and do nothing."""
        self.observed.pop(node_id, None)
        self.disposers.pop(node_id, None)
        self.generations.pop(node_id, None)

    def __len__(self) -> int:
        return len(self.generations)
