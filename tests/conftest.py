import itertools
import math

import pytest

from sfcplace.milp.context import CallbackContext
from sfcplace.milp.formulation import Demand, Node, PlacementInstance, VNF
from sfcplace.milp.params import Parameters


def make_instance(availabilities, required, nb_sections=2, capacity=100.0, costs=None,
                  nb_demands=1, bandwidth=1.0):
    """
    Small instance: two VNF types, section i of every chain uses VNF i % 2.
    Default cost of VNF f on node v is 1 + v + f.
    """
    nodes = [Node(v, f"n{v}", capacity, a) for v, a in enumerate(availabilities)]
    if costs is None:
        costs = [[1.0 + v + f for v in range(len(nodes))] for f in range(2)]
    vnfs = [VNF(f, f"vnf{f}", 1.0, tuple(costs[f])) for f in range(2)]
    demands = [Demand(k, 0, len(nodes) - 1, tuple(i % 2 for i in range(nb_sections)), bandwidth, required)
               for k in range(nb_demands)]
    return PlacementInstance(nodes, vnfs, demands)


def make_xsol(instance, placement=None, fill=0.0):
    """placement: {(k, i, v): value}"""
    xsol = [[[fill] * instance.nb_nodes for _ in range(d.nb_sections)] for d in instance.demands]
    for (k, i, v), value in (placement or {}).items():
        xsol[k][i][v] = value
    return xsol


def brute_force_optimum(instance):
    """Cheapest feasible placement of a single-demand instance with distinct VNF per section."""
    subsets = [s for r in range(1, instance.nb_nodes + 1) for s in itertools.combinations(range(instance.nb_nodes), r)]
    demand = instance.demands[0]
    best = math.inf
    for choice in itertools.product(subsets, repeat=demand.nb_sections):
        avail = instance.chain_availability(instance.parallel_availability(s) for s in choice)
        if avail < demand.availability:
            continue
        placed = {(v, demand.vnfs[i]) for i, s in enumerate(choice) for v in s}
        best = min(best, sum(instance.placement_cost(v, f) for v, f in placed))
    return best


class FakeContext(CallbackContext):
    """Scripted search-engine context recording everything the callback emits."""

    def __init__(self, context_id, values=None, relaxation_objective=0.0, incumbent=1e100,
                 bounded=True, times=(0.0, 0.0)):
        self.context_id = context_id
        self.values = values or {}
        self._relaxation_objective = relaxation_objective
        self._incumbent = incumbent
        self._bounded = bounded
        self._times = list(times)
        self.user_cuts = []
        self.rejections = []
        self.posted = []

    def elapsed(self):
        return self._times.pop(0) if len(self._times) > 1 else self._times[0]

    def relaxation_value(self, key):
        return self.values.get(key, 0.0)

    def relaxation_objective(self):
        return self._relaxation_objective

    def incumbent_objective(self):
        return self._incumbent

    def add_user_cut(self, cut):
        self.user_cuts.append(cut)

    def is_candidate_point(self):
        return self._bounded

    def candidate_value(self, key):
        return self.values.get(key, 0.0)

    def reject_candidate(self, cut):
        self.rejections.append(cut)

    def post_heuristic_solution(self, values, objective):
        self.posted.append((dict(values), objective))


@pytest.fixture
def scenario_instance():
    # one chain, 2 sections, nodes [0.9, 0.8, 0.95], chain availability 0.99
    return make_instance([0.9, 0.8, 0.95], 0.99)


@pytest.fixture
def default_params():
    return Parameters()
