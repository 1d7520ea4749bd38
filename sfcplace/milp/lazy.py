"""
Availability check of integer candidates.

For each chain, the sections are consumed in ascending availability order
until the running product drops below the requirement. That prefix is lifted
and turned into a no-good inequality: at least one new (section, node)
assignment is needed inside the prefix.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, List, Set, Tuple

from .cuts import EPS, LinearCut


@dataclass
class SectionAvailability:
    section: int
    availability: float


def assigned_pairs(instance, k, xsol) -> Set[Tuple[int, int]]:
    demand = instance.demands[k]
    return {(i, v) for i in range(demand.nb_sections) for v in range(instance.nb_nodes)
            if xsol[k][i][v] >= 1 - EPS}


def section_availabilities(instance, k, xsol) -> List[SectionAvailability]:
    """Availability of each section of chain k, counting nodes with x >= 1 - eps."""
    demand = instance.demands[k]
    return [
        SectionAvailability(i, instance.parallel_availability(
            v for v in range(instance.nb_nodes) if xsol[k][i][v] >= 1 - EPS))
        for i in range(demand.nb_sections)
    ]


def find_violated_prefix(required, sections: List[SectionAvailability]) -> List[SectionAvailability]:
    """
    Shortest ascending prefix whose availability product is below `required`.
    Empty when the chain meets its requirement.
    """
    ordered = sorted(sections, key=lambda s: s.availability)
    prod = 1.0
    idx = 0
    while prod >= required and idx < len(ordered):
        prod *= ordered[idx].availability
        idx += 1
    if prod < required:
        return ordered[:idx]
    return []


def _prefix_product(prefix: List[SectionAvailability], replaced: int = -1, value: float = 0.0) -> float:
    prod = 1.0
    for pos, sec in enumerate(prefix):
        prod *= value if pos == replaced else sec.availability
    return prod


def lift(instance, required, prefix: List[SectionAvailability], assigned: Set[Tuple[int, int]]) -> List[Tuple[int, int]]:
    """
    Add to the prefix every (section, node) pair that, on its own, still leaves
    the prefix below `required`. Updates `prefix` and `assigned` in place and
    returns the lifted pairs.
    """
    lifted = []
    for pos, sec in enumerate(prefix):
        for v in range(instance.nb_nodes):
            if (sec.section, v) in assigned:
                continue
            node_avail = instance.nodes[v].availability
            new_avail = 1.0 - (1.0 - sec.availability) * (1.0 - node_avail)
            if _prefix_product(prefix, pos, new_avail) < required:
                sec.availability = new_avail
                assigned.add((sec.section, v))
                lifted.append((sec.section, v))
    return lifted


def build_lazy_cut(instance, k, prefix: List[SectionAvailability], assigned: Set[Tuple[int, int]]) -> LinearCut:
    sections = sorted(sec.section for sec in prefix)
    terms = tuple(((k, i, v), 1.0) for i in sections for v in range(instance.nb_nodes)
                  if (i, v) not in assigned)
    return LinearCut(terms, 1.0, math.inf, f"LazyAvailability({k})")


def add_lazy_constraints(instance, xsol, reject: Callable, use_lifting=True, msg=False) -> int:
    """Reject the candidate once per chain below its required availability."""
    nb_added = 0
    for k, demand in enumerate(instance.demands):
        prefix = find_violated_prefix(demand.availability, section_availabilities(instance, k, xsol))
        if not prefix:
            continue
        assigned = assigned_pairs(instance, k, xsol)
        if use_lifting:
            lift(instance, demand.availability, prefix, assigned)
        cut = build_lazy_cut(instance, k, prefix, assigned)
        if msg:
            print(f"[INFO][LAZY] Chain {k} violated on sections {[s.section for s in prefix]}: adding {cut.name}")
        reject(cut)
        nb_added += 1
    return nb_added
