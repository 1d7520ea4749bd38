from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple


@dataclass(frozen=True)
class Node:
    id: int
    name: str
    capacity: float
    availability: float


@dataclass(frozen=True)
class VNF:
    id: int
    name: str
    consumption: float   # resource units per unit of bandwidth
    costs: Tuple[float, ...]  # placement cost on each node, indexed by node id


@dataclass(frozen=True)
class Demand:
    """A service function chain: ordered sections, each bound to one VNF type."""
    id: int
    source: int
    target: int
    vnfs: Tuple[int, ...]
    bandwidth: float
    availability: float
    max_latency: float = float("inf")

    @property
    def nb_sections(self) -> int:
        return len(self.vnfs)


@dataclass(frozen=True)
class Link:
    source: int
    target: int
    bandwidth: float = 0.0
    delay: float = 0.0


class PlacementInstance:
    """
    Read-only data container for the availability-aware VNF placement MIP.

    Node, VNF and demand ids are dense integers (0..n-1) and equal to the
    position of the object in its list.

    Combinatorial helpers:
      - avail_node_rank: node ids by decreasing availability (ties by id)
      - min_nb_nodes(required[, node_availability])
      - vnf_lb(required, nb_sections[, allowed])
      - failure_prob / parallel_availability / chain_availability
    """

    def __init__(self, nodes: Sequence[Node], vnfs: Sequence[VNF], demands: Sequence[Demand],
                 links: Sequence[Link] = ()):
        self.nodes: List[Node] = list(nodes)
        self.vnfs: List[VNF] = list(vnfs)
        self.demands: List[Demand] = list(demands)
        self.links: List[Link] = list(links)
        self._validate()

        self.avail_node_rank: List[int] = sorted(
            (n.id for n in self.nodes), key=lambda v: (-self.nodes[v].availability, v)
        )
        self._rank_position: Dict[int, int] = {v: pos for pos, v in enumerate(self.avail_node_rank)}
        self._vnf_lb_cache: Dict[Tuple, Dict[int, int]] = {}

    # ---------------------------------------------------------------------
    def _validate(self):
        for pos, n in enumerate(self.nodes):
            if n.id != pos:
                raise ValueError(f"Node ids must be dense and ordered: got id {n.id} at position {pos}")
            if not 0.0 < n.availability < 1.0:
                raise ValueError(f"Node {n.name}: availability {n.availability} outside (0,1)")
            if n.capacity < 0:
                raise ValueError(f"Node {n.name}: negative capacity {n.capacity}")
        for pos, f in enumerate(self.vnfs):
            if f.id != pos:
                raise ValueError(f"VNF ids must be dense and ordered: got id {f.id} at position {pos}")
            if len(f.costs) != len(self.nodes):
                raise ValueError(f"VNF {f.name}: expected {len(self.nodes)} placement costs, got {len(f.costs)}")
        for pos, d in enumerate(self.demands):
            if d.id != pos:
                raise ValueError(f"Demand ids must be dense and ordered: got id {d.id} at position {pos}")
            if not 0.0 < d.availability <= 1.0:
                raise ValueError(f"Demand {d.id}: required availability {d.availability} outside (0,1]")
            if not d.vnfs:
                raise ValueError(f"Demand {d.id}: empty chain")
            for f in d.vnfs:
                if not 0 <= f < len(self.vnfs):
                    raise ValueError(f"Demand {d.id}: unknown VNF type {f}")

    # ---------------------------------------------------------------------
    @property
    def nb_nodes(self) -> int:
        return len(self.nodes)

    @property
    def nb_vnfs(self) -> int:
        return len(self.vnfs)

    @property
    def nb_demands(self) -> int:
        return len(self.demands)

    def node_rank_position(self, v: int) -> int:
        return self._rank_position[v]

    def placement_cost(self, v: int, f: int) -> float:
        return self.vnfs[f].costs[v]

    def required_capacity(self, k: int, f: int) -> float:
        """Capacity consumed on a node by serving one section of demand k with VNF type f."""
        return self.demands[k].bandwidth * self.vnfs[f].consumption

    # ---------------------------------------------------------------------
    # Availability helpers
    # ---------------------------------------------------------------------
    def failure_prob(self, nodes: Iterable[int]) -> float:
        """Probability that every node of the set fails simultaneously."""
        prob = 1.0
        for v in nodes:
            prob *= 1.0 - self.nodes[v].availability
        return prob

    def parallel_availability(self, nodes: Iterable[int]) -> float:
        return 1.0 - self.failure_prob(nodes)

    @staticmethod
    def chain_availability(section_availabilities: Iterable[float]) -> float:
        availability = 1.0
        for a in section_availabilities:
            availability *= a
        return availability

    def min_nb_nodes(self, required: float, node_availability: Optional[float] = None) -> int:
        """
        Minimum number of nodes a single section needs to reach `required`.

        With `node_availability`, all nodes are assumed to have that availability.
        Otherwise the most available nodes are taken first (prefix of avail_node_rank).
        Returns -1 when the requirement cannot be reached.
        """
        if required >= 1.0:
            return -1
        if node_availability is not None:
            failure = 1.0 - node_availability
            nb = 1
            while 1.0 - failure < required:
                failure *= 1.0 - node_availability
                nb += 1
            return nb

        failure = 1.0
        for nb, v in enumerate(self.avail_node_rank, start=1):
            failure *= 1.0 - self.nodes[v].availability
            if 1.0 - failure >= required:
                return nb
        return -1

    def vnf_lb(self, required: float, nb_sections: int, allowed: Optional[Iterable[int]] = None) -> int:
        """
        Minimum total number of section/node assignments needed so that
        `nb_sections` sections, served only by nodes of `allowed` (all nodes by
        default), reach a joint availability of `required`.
        Returns -1 when the requirement cannot be reached.
        """
        if nb_sections < 1:
            raise ValueError(f"nb_sections must be positive, got {nb_sections}")
        allowed_set = None if allowed is None else set(allowed)
        ranked = tuple(v for v in self.avail_node_rank if allowed_set is None or v in allowed_set)
        if not ranked:
            return -1

        key = (required, ranked)
        tables = self._vnf_lb_cache.setdefault(key, {})
        if nb_sections not in tables:
            tables[nb_sections] = self._min_assignments(required, nb_sections, ranked)
        return tables[nb_sections]

    def _min_assignments(self, required: float, nb_sections: int, ranked: Tuple[int, ...]) -> int:
        # section_avail[n]: availability of a section served by the n best nodes
        section_avail = [0.0]
        failure = 1.0
        for v in ranked:
            failure *= 1.0 - self.nodes[v].availability
            section_avail.append(1.0 - failure)

        # best[t]: best joint availability of the sections processed so far using t assignments
        best = {0: 1.0}
        for _ in range(nb_sections):
            nxt: Dict[int, float] = {}
            for total, prod in best.items():
                for nb in range(1, len(ranked) + 1):
                    value = prod * section_avail[nb]
                    if value > nxt.get(total + nb, -1.0):
                        nxt[total + nb] = value
            best = nxt

        for total in sorted(best):
            if best[total] >= required:
                return total
        return -1

    def __repr__(self):
        return (f"<PlacementInstance | nodes={self.nb_nodes} vnfs={self.nb_vnfs} "
                f"demands={self.nb_demands} links={len(self.links)}>")
