"""
Separation routines run on fractional points (relaxation context).

Every routine reads the current point from `xsol[k][i][v]`, submits the cuts
it finds through `add_cut(cut)` and returns how many it added.
"""
from __future__ import annotations

import math
from typing import Callable, List, Sequence

import numpy as np

from .cuts import EPS, LinearCut


def check_cut_pool(pool: Sequence[LinearCut], xsol, add_cut: Callable, msg=False) -> int:
    """Add every pool cut violated by xsol (not only the first one)."""
    nb_added = 0
    for cut in pool:
        if cut.is_violated(xsol, EPS):
            if msg:
                print(f"[INFO][CUTS] Adding {cut.name}")
            add_cut(cut)
            nb_added += 1
    return nb_added


def _sorted_sections(section_mass) -> List[int]:
    return [int(i) for i in np.argsort(np.asarray(section_mass, dtype=float), kind="stable")]


def chain_cover_separation(instance, xsol, add_cut: Callable, first_hit=False, msg=False) -> int:
    """
    For each chain, the s sections with the least assignment mass must hold at
    least vnf_lb(required, s) assignments. One cut per violated chain (the
    smallest violated s); with `first_hit`, stop after the first cut overall.
    """
    nb_added = 0
    for k, demand in enumerate(instance.demands):
        mass = [sum(xsol[k][i]) for i in range(demand.nb_sections)]
        order = _sorted_sections(mass)
        lhs = 0.0
        for nb_sections in range(1, demand.nb_sections + 1):
            lhs += mass[order[nb_sections - 1]]
            rhs = instance.vnf_lb(demand.availability, nb_sections)
            if lhs < rhs - EPS:
                terms = tuple(((k, i, v), 1.0) for i in order[:nb_sections] for v in range(instance.nb_nodes))
                cut = LinearCut(terms, float(rhs), math.inf, f"ChainCoverCut({k},{nb_sections})")
                if msg:
                    print(f"[INFO][CUTS] Adding {cut.name}")
                add_cut(cut)
                nb_added += 1
                break
        if first_hit and nb_added:
            return nb_added
    return nb_added


def generalized_cover_separation(instance, xsol, add_cut: Callable, first_hit=True, msg=False) -> int:
    """
    For each chain and each limit node, let U be the nodes ranked at or after
    the limit node (at most as available). Assignments to nodes of U count 1,
    assignments to other nodes count rhs = vnf_lb(required, s, U).
    With `first_hit` (default), the whole pass stops at the first violated cut.
    """
    nb_added = 0
    for k, demand in enumerate(instance.demands):
        for limit_node in range(instance.nb_nodes):
            limit_pos = instance.node_rank_position(limit_node)
            in_u = [instance.node_rank_position(v) >= limit_pos for v in range(instance.nb_nodes)]
            allowed = [v for v in range(instance.nb_nodes) if in_u[v]]
            for nb_sections in range(1, demand.nb_sections + 1):
                rhs = instance.vnf_lb(demand.availability, nb_sections, allowed)
                if rhs < 0:
                    continue
                weights = [1.0 if in_u[v] else float(rhs) for v in range(instance.nb_nodes)]
                mass = [sum(w * x for w, x in zip(weights, xsol[k][i])) for i in range(demand.nb_sections)]
                order = _sorted_sections(mass)
                lhs = sum(mass[i] for i in order[:nb_sections])
                if lhs < rhs - EPS:
                    terms = tuple(((k, i, v), weights[v]) for i in order[:nb_sections]
                                  for v in range(instance.nb_nodes))
                    cut = LinearCut(terms, float(rhs), math.inf,
                                    f"GenCoverCut({k},{nb_sections},{limit_node})")
                    if msg:
                        print(f"[INFO][CUTS] Adding {cut.name}")
                    add_cut(cut)
                    nb_added += 1
                    if first_hit:
                        return nb_added
                    break
    return nb_added


# -------------------------------------------------------------------------
# Greedy separation of availability constraints
# -------------------------------------------------------------------------
def _initial_placement(instance, k, xsol):
    """Integral positions are placed; empty sections get the best x/availability node."""
    demand = instance.demands[k]
    placed = [[False] * instance.nb_nodes for _ in range(demand.nb_sections)]
    section_avail = []
    for i in range(demand.nb_sections):
        for v in range(instance.nb_nodes):
            if xsol[k][i][v] >= 1 - EPS:
                placed[i][v] = True
        if not any(placed[i]):
            best_node, best_value = -1, -1.0
            for v in range(instance.nb_nodes):
                ratio = xsol[k][i][v] / instance.nodes[v].availability
                if ratio > best_value:
                    best_node, best_value = v, ratio
            placed[i][best_node] = True
        section_avail.append(instance.parallel_availability(v for v in range(instance.nb_nodes) if placed[i][v]))
    return placed, section_avail


def availability_separation_heuristic(instance, xsol, add_cut: Callable, msg=False) -> int:
    """
    Grow, per chain, a placement that stays below the required availability,
    preferring positions with high x per unit of availability gained. Every
    position left out of it gets coefficient 1 in `sum >= 1`.
    """
    nb_added = 0
    for k, demand in enumerate(instance.demands):
        placed, section_avail = _initial_placement(instance, k, xsol)
        chain_avail = instance.chain_availability(section_avail)
        required = demand.availability
        if chain_avail >= required:
            continue

        while True:
            best = None
            best_ratio = -1.0
            for i in range(demand.nb_sections):
                for v in range(instance.nb_nodes):
                    if placed[i][v]:
                        continue
                    new_section = 1.0 - (1.0 - section_avail[i]) * (1.0 - instance.nodes[v].availability)
                    delta = chain_avail / section_avail[i] * new_section - chain_avail
                    if delta <= 0 or chain_avail + delta >= required:
                        continue
                    ratio = xsol[k][i][v] / delta
                    if ratio > best_ratio:
                        best, best_ratio = (i, v, new_section), ratio
            if best is None:
                break
            i, v, new_section = best
            placed[i][v] = True
            section_avail[i] = new_section
            chain_avail = instance.chain_availability(section_avail)

        free = [(i, v) for i in range(demand.nb_sections) for v in range(instance.nb_nodes) if not placed[i][v]]
        lhs = sum(xsol[k][i][v] for i, v in free)
        if lhs < 1 - EPS:
            cut = LinearCut(tuple(((k, i, v), 1.0) for i, v in free), 1.0, math.inf,
                            f"heurAvailabilityCut({k})")
            if msg:
                print(f"[INFO][CUTS] Adding {cut.name}")
            add_cut(cut)
            nb_added += 1
    return nb_added


def separate_fractional(instance, params, pool, xsol, add_cut: Callable, add_heuristic_cut: Callable = None,
                        msg=False) -> bool:
    """
    Pool first; the exponential families and the greedy heuristic only run
    when no pool cut is violated. Returns True when at least one cut was added.
    """
    if check_cut_pool(pool, xsol, add_cut, msg=msg):
        return True

    # generalized cover runs before chain cover
    nb_added = 0
    if params.generalized_cover:
        nb_added += generalized_cover_separation(instance, xsol, add_cut,
                                                 first_hit=params.generalized_cover_first_hit, msg=msg)
    if params.chain_cover:
        nb_added += chain_cover_separation(instance, xsol, add_cut,
                                           first_hit=params.chain_cover_first_hit, msg=msg)
    if params.availability_usercuts:
        nb_added += availability_separation_heuristic(instance, xsol, add_heuristic_cut or add_cut, msg=msg)
    return nb_added > 0
