import math
import random

from ..milp.context import assignment_matrix, placement_matrix, variable_keys
from ..milp.cuts import EPSILON


class Matheuristic:
    """
    Randomised rounding of a node relaxation followed by a greedy repair of the
    chains that miss their required availability.

    The scratch buffers (xsol, ysol, remaining) are rewritten on every run and
    assume a single search thread.
    """

    def __init__(self, instance, params, seed=None, msg=False):
        self.instance = instance
        self.params = params
        self.msg = msg
        self.rng = random.Random(params.seed if seed is None else seed)

        self.xsol = assignment_matrix(instance)
        self.ysol = placement_matrix(instance)
        self.remaining = [0.0] * instance.nb_nodes
        self.objective = 0.0

    # -------------------------
    # Firing rule
    # -------------------------
    def heuristic_rule(self, relaxation_objective, incumbent_objective):
        """Fire with probability (UB - LP) / UB; never with an availability approximation."""
        if self.params.uses_approximation:
            return False
        if incumbent_objective <= 0:
            return False
        if math.isinf(incumbent_objective):
            return True
        limit = (incumbent_objective - relaxation_objective) / incumbent_objective
        return self.rng.random() <= limit

    # -------------------------
    # Phase I: randomised rounding
    # -------------------------
    def run_phase_one(self, x_rel, y_rel):
        inst = self.instance
        self.objective = 0.0
        for v in range(inst.nb_nodes):
            for f in range(inst.nb_vnfs):
                self.ysol[v][f] = 0
                if self.rng.random() < y_rel[v][f]:
                    self.ysol[v][f] = 1
                    self.objective += inst.placement_cost(v, f)

        for v, node in enumerate(inst.nodes):
            self.remaining[v] = node.capacity

        for k, demand in enumerate(inst.demands):
            for i, f in enumerate(demand.vnfs):
                need = inst.required_capacity(k, f)
                for v in range(inst.nb_nodes):
                    self.xsol[k][i][v] = 0
                    if self.ysol[v][f] and need <= self.remaining[v]:
                        if self.rng.random() < x_rel[k][i][v]:
                            self.xsol[k][i][v] = 1
                            self.remaining[v] -= need
        return self.objective

    # -------------------------
    # Phase II: repair
    # -------------------------
    def solution_availability(self, k):
        """(chain availability, least available section) for the current xsol."""
        inst = self.instance
        demand = inst.demands[k]
        chain_avail = 1.0
        least_section, least_avail = -1, math.inf
        for i in range(demand.nb_sections):
            avail = inst.parallel_availability(v for v in range(inst.nb_nodes) if self.xsol[k][i][v])
            chain_avail *= avail
            if avail < least_avail:
                least_section, least_avail = i, avail
        return chain_avail, least_section

    def get_node_to_install(self, k, i):
        """
        Cheapest node (additional placement cost) with enough remaining capacity
        for section i of chain k; ties go to the node with more remaining
        capacity. Returns -1 when no node qualifies.
        """
        inst = self.instance
        f = inst.demands[k].vnfs[i]
        need = inst.required_capacity(k, f)
        best_node = -1
        best_cost = math.inf
        best_remaining = 0.0
        for v in range(inst.nb_nodes):
            if self.xsol[k][i][v] or need > self.remaining[v]:
                continue
            cost = inst.placement_cost(v, f) * (1 - self.ysol[v][f])
            if cost <= best_cost - EPSILON:
                best_node, best_cost, best_remaining = v, cost, self.remaining[v]
            elif abs(cost - best_cost) < EPSILON and self.remaining[v] >= best_remaining + EPSILON:
                best_node, best_cost, best_remaining = v, cost, self.remaining[v]
        return best_node

    def run_phase_two(self):
        """Returns False as soon as one chain cannot be repaired."""
        inst = self.instance
        for k, demand in enumerate(inst.demands):
            chain_avail, i = self.solution_availability(k)
            while chain_avail < demand.availability:
                v = self.get_node_to_install(k, i)
                if v < 0:
                    if self.msg:
                        print(f"[WARN][HEUR] Chain {k}: no node left for section {i}, run discarded.")
                    return False
                f = demand.vnfs[i]
                self.xsol[k][i][v] = 1
                self.remaining[v] -= inst.required_capacity(k, f)
                if not self.ysol[v][f]:
                    self.ysol[v][f] = 1
                    self.objective += inst.placement_cost(v, f)
                chain_avail, i = self.solution_availability(k)
        return True

    # -------------------------
    # Posting
    # -------------------------
    def solution_values(self):
        values = {}
        for key in variable_keys(self.instance):
            if key[0] == "y":
                values[key] = float(self.ysol[key[1]][key[2]])
            else:
                values[key] = float(self.xsol[key[1]][key[2]][key[3]])
        return values

    def run(self, context, x_rel, y_rel):
        """Round, repair, and post the solution if it beats the incumbent. Returns True when posted."""
        incumbent = context.incumbent_objective()
        if not self.heuristic_rule(context.relaxation_objective(), incumbent):
            return False
        self.run_phase_one(x_rel, y_rel)
        if not self.run_phase_two():
            return False
        if self.objective < incumbent:
            if self.msg:
                print(f"[INFO][HEUR] Posting heuristic solution with cost {self.objective:.4f}")
            context.post_heuristic_solution(self.solution_values(), self.objective)
            return True
        return False
