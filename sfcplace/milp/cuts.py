from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Tuple

import gurobipy as gp

EPS = 1e-4       # violation / integrality tolerance
EPSILON = 1e-6   # tie-breaking tolerance

Term = Tuple[Tuple[int, int, int], float]  # ((k, i, v), coefficient)


@dataclass(frozen=True)
class LinearCut:
    """lb <= sum(coeff * x[k,i,v]) <= ub over assignment variables only."""
    terms: Tuple[Term, ...]
    lb: float
    ub: float = math.inf
    name: str = ""

    def evaluate(self, xsol) -> float:
        return sum(coeff * xsol[k][i][v] for (k, i, v), coeff in self.terms)

    def is_violated(self, xsol, eps: float = EPS) -> bool:
        lhs = self.evaluate(xsol)
        return lhs < self.lb - eps or lhs > self.ub + eps

    def to_gurobi(self, variables):
        expr = gp.LinExpr([coeff for _, coeff in self.terms],
                          [variables[("x", k, i, v)] for (k, i, v), _ in self.terms])
        if math.isinf(self.ub):
            return expr >= self.lb
        if math.isinf(self.lb):
            return expr <= self.ub
        raise ValueError(f"Cut {self.name}: two-sided cuts are not supported in callbacks")


# -------------------------------------------------------------------------
# Static cut pool
# -------------------------------------------------------------------------
def build_cut_pool(instance, params, msg=False) -> List[LinearCut]:
    """
    Valid inequalities that only depend on instance data. Built once, before
    the search starts, and checked at every relaxation node.
    """
    if msg:
        print("[INFO][CUTS] Setting up pool of cuts...")
    pool: List[LinearCut] = []
    if params.node_cover:
        pool.extend(availability_cover_cuts(instance, msg=msg))
    if params.vnf_lower_bound:
        pool.extend(vnf_lower_bound_cuts(instance, msg=msg))
    if params.section_failure:
        pool.extend(section_failure_cuts(instance, msg=msg))
    if msg:
        print(f"[INFO][CUTS] Pool ready with {len(pool)} cuts.")
    return pool


def availability_cover_cuts(instance, msg=False) -> List[LinearCut]:
    """
    For each threshold node v, at least c[v] assignments are needed when only
    nodes at most as available as v are used; each more available node u
    counts for max(c[v] - c[u] + 1, 1). Dominated thresholds are skipped.
    """
    if msg:
        print("[INFO][CUTS] Adding node cover cuts to the pool...")
    cuts = []
    rank = instance.avail_node_rank
    for k, demand in enumerate(instance.demands):
        c = {}
        for v in rank:
            c[v] = instance.min_nb_nodes(demand.availability, instance.nodes[v].availability)
            if c[v] <= 0:
                raise ValueError(f"min_nb_nodes returned {c[v]} for demand {k}, node {v}")
        for i in range(demand.nb_sections):
            for v in range(instance.nb_nodes):
                pos = instance.node_rank_position(v)
                if pos == 0 or c[v] <= c[rank[pos - 1]]:
                    continue
                terms = []
                for u in range(instance.nb_nodes):
                    if instance.node_rank_position(u) < pos:
                        coeff = max(c[v] - c[u] + 1, 1)
                    else:
                        coeff = 1
                    terms.append(((k, i, u), float(coeff)))
                cuts.append(LinearCut(tuple(terms), float(c[v]), math.inf, f"NodeCover({k},{i},{v})"))
    return cuts


def vnf_lower_bound_cuts(instance, msg=False) -> List[LinearCut]:
    """Whole-chain assignment count, added only when stronger than the per-section bounds."""
    if msg:
        print("[INFO][CUTS] Adding chain cover cuts to the pool...")
    cuts = []
    for k, demand in enumerate(instance.demands):
        nb_sections = demand.nb_sections
        rhs = instance.vnf_lb(demand.availability, nb_sections)
        per_section = instance.vnf_lb(demand.availability, 1)
        if rhs <= 0 or per_section <= 0:
            raise ValueError(f"vnf_lb returned an invalid bound for demand {k} "
                             f"(chain={rhs}, section={per_section})")
        if rhs > nb_sections * per_section:
            terms = tuple(((k, i, v), 1.0) for i in range(nb_sections) for v in range(instance.nb_nodes))
            cuts.append(LinearCut(terms, float(rhs), math.inf, f"VNF_LowerBound({k})"))
    return cuts


def section_failure_cuts(instance, msg=False) -> List[LinearCut]:
    """sum_v -log(1 - a_v) x[k,i,v] >= -log(1 - required_k)."""
    if msg:
        print("[INFO][CUTS] Adding section failure cuts to the pool...")
    cuts = []
    for k, demand in enumerate(instance.demands):
        if demand.availability >= 1.0:
            raise ValueError(f"Demand {k}: section failure bound undefined for availability 1")
        rhs = -math.log(1.0 - demand.availability)
        for i in range(demand.nb_sections):
            terms = tuple(((k, i, v), -math.log(1.0 - node.availability))
                          for v, node in enumerate(instance.nodes))
            cuts.append(LinearCut(terms, rhs, math.inf, f"Section_Fail({k},{i})"))
    return cuts
