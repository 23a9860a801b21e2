from __future__ import annotations

"""
File: pathsim/sim/nodes.py
Purpose: Resolve waypoint ids to world positions and node kinds.
Key responsibilities:
- Index pickups, dropoffs, stations, robots and navigation points once per environment.
- Apply first-match-wins across categories in that order.
"""

import logging
from typing import Iterable

from pathsim.schemas import Environment
from pathsim.sim.entities import Node

logger = logging.getLogger("path-sim.nodes")


class NodeResolver:
    """Global id -> Node lookup built once per environment load."""
    def __init__(self, nodes: Iterable[Node]) -> None:
        self._nodes: dict[str, Node] = {}
        for node in nodes:
            if node.id in self._nodes:
                logger.debug(
                    "node id %s declared as %s and %s, keeping %s",
                    node.id,
                    self._nodes[node.id].kind,
                    node.kind,
                    self._nodes[node.id].kind,
                )
                continue
            self._nodes[node.id] = node

    @classmethod
    def from_environment(cls, environment: Environment) -> NodeResolver:
        """Build the resolver from the layout's five node collections."""
        elements = environment.elements
        nodes: list[Node] = []
        nodes.extend(Node(p.id, p.position[0], p.position[1], "pickup") for p in elements.pickups)
        nodes.extend(Node(d.id, d.position[0], d.position[1], "dropoff") for d in elements.dropoffs)
        nodes.extend(Node(s.id, s.position[0], s.position[1], "station") for s in elements.robot_stations)
        nodes.extend(
            Node(r.id, r.position[0], r.position[1], "robot") for r in elements.robots if r.position is not None
        )
        nodes.extend(Node(n.id, n.position[0], n.position[1], "navigation") for n in elements.navigation_points)
        return cls(nodes)

    def resolve(self, node_id: str) -> Node | None:
        """Return the node for an id, or None if no category declares it."""
        return self._nodes.get(node_id)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)
