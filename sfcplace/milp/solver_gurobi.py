from dataclasses import dataclass, field
import math

import gurobipy as gp
from gurobipy import GRB

from .callback import AvailabilityCallback
from .params import APPROXIMATION_RESTRICTION, Parameters


@dataclass
class GurobiSolveResult:
    status_code: int
    status_str: str
    objective: float
    values: dict  # maps ("x",k,i,v) / ("y",v,f) -> float values
    best_bound: float = None
    gap: float = None
    node_count: float = 0.0
    runtime: float = 0.0
    stats: dict = field(default_factory=dict)


_STATUS = {
    GRB.LOADED: "LOADED",
    GRB.OPTIMAL: "OPTIMAL",
    GRB.INFEASIBLE: "INFEASIBLE",
    GRB.INF_OR_UNBD: "INF_OR_UNBD",
    GRB.UNBOUNDED: "UNBOUNDED",
    GRB.CUTOFF: "CUTOFF",
    GRB.ITERATION_LIMIT: "ITERATION_LIMIT",
    GRB.NODE_LIMIT: "NODE_LIMIT",
    GRB.TIME_LIMIT: "TIME_LIMIT",
    GRB.SOLUTION_LIMIT: "SOLUTION_LIMIT",
    GRB.INTERRUPTED: "INTERRUPTED",
    GRB.NUMERIC: "NUMERIC",
    GRB.SUBOPTIMAL: "SUBOPTIMAL",
}


def status_to_str(code):
    return _STATUS.get(code, str(code))


def touch_points(lb, ub, nb_points):
    """Geometrically spaced points from lb to ub (both included)."""
    if nb_points < 2 or lb >= ub:
        return [ub]
    return [ub * (lb / ub) ** ((nb_points - 1 - t) / (nb_points - 1)) for t in range(nb_points)]


def _add_log_bound(m, var, lhs, points, restriction, name):
    """
    log(var) >= lhs, with log replaced by its secant interpolation (restriction)
    or by its tangents at `points` (relaxation).
    """
    if restriction:
        log_var = m.addVar(lb=-GRB.INFINITY, ub=0.0, name=f"log_{name}")
        m.addGenConstrPWL(var, log_var, points, [math.log(p) for p in points], name=f"pwl_{name}")
        m.addConstr(log_var >= lhs, name=f"logBound_{name}")
    else:
        for t, p in enumerate(points):
            m.addConstr(math.log(p) + (var - p) / p >= lhs, name=f"tangent_{name}_{t}")


# -------------------------
# Model
# -------------------------
def build_model(instance, params, msg=False):
    """
    Returns (model, variables, objective) where `variables` maps
    ("y",v,f) / ("x",k,i,v) to gurobipy variables and `objective` maps the
    same keys to their objective coefficient.
    """
    m = gp.Model("AvailabilityPlacement")
    m.Params.OutputFlag = 1 if msg else 0
    m.Params.Threads = params.threads
    if params.time_limit:
        m.Params.TimeLimit = params.time_limit
    if not params.linear_relaxation:
        m.Params.PreCrush = 1
        if params.lazy:
            m.Params.LazyConstraints = 1

    vtype = GRB.CONTINUOUS if params.linear_relaxation else GRB.BINARY
    N = range(instance.nb_nodes)
    F = range(instance.nb_vnfs)

    # -------------------------
    # Variables
    # -------------------------
    y = {(v, f): m.addVar(lb=0, ub=1, vtype=vtype, name=f"y({v},{f})") for v in N for f in F}
    x = {(k, i, v): m.addVar(lb=0, ub=1, vtype=vtype, name=f"x({k},{i},{v})")
         for k, d in enumerate(instance.demands) for i in range(d.nb_sections) for v in N}

    # -------------------------
    # Objective
    # -------------------------
    objective = {("y", v, f): instance.placement_cost(v, f) for v in N for f in F}
    m.setObjective(gp.quicksum(instance.placement_cost(v, f) * y[v, f] for v in N for f in F), GRB.MINIMIZE)

    # -------------------------
    # Constraints
    # -------------------------
    # (1) Assignment: enough nodes per section to reach the chain availability
    for k, d in enumerate(instance.demands):
        nb_min = instance.min_nb_nodes(d.availability)
        if nb_min < 1:
            raise ValueError(f"Demand {k}: required availability {d.availability} cannot be reached "
                             f"(min_nb_nodes={nb_min})")
        for i in range(d.nb_sections):
            m.addConstr(gp.quicksum(x[k, i, v] for v in N) >= nb_min, name=f"Assignment({k},{i})")

    # (2) Node capacity
    for v in N:
        m.addConstr(
            gp.quicksum(instance.required_capacity(k, f) * x[k, i, v]
                        for k, d in enumerate(instance.demands) for i, f in enumerate(d.vnfs))
            <= instance.nodes[v].capacity, name=f"NodeCapacity({v})")

    # (3) Placement
    if params.disaggregated_placement:
        for k, d in enumerate(instance.demands):
            for i, f in enumerate(d.vnfs):
                for v in N:
                    m.addConstr(x[k, i, v] <= y[v, f], name=f"Placement({k},{i},{v})")
    else:
        big_m = sum(d.nb_sections for d in instance.demands)
        for v in N:
            for f in F:
                m.addConstr(
                    gp.quicksum(x[k, i, v] for k, d in enumerate(instance.demands)
                                for i, g in enumerate(d.vnfs) if g == f) <= big_m * y[v, f],
                    name=f"Placement({v},{f})")

    # (4) Strong node capacity
    if params.strong_node_capacity:
        for v in N:
            for f in F:
                m.addConstr(
                    gp.quicksum(instance.required_capacity(k, f) * x[k, i, v]
                                for k, d in enumerate(instance.demands) for i, g in enumerate(d.vnfs) if g == f)
                    <= instance.nodes[v].capacity * y[v, f], name=f"StrongCapacity({v},{f})")

    # (5) Availability approximation
    if params.uses_approximation:
        _add_availability_approximation(m, x, instance, params)

    variables = {("y",) + key: var for key, var in y.items()}
    variables.update({("x",) + key: var for key, var in x.items()})
    m.update()
    return m, variables, objective


def _add_availability_approximation(m, x, instance, params):
    restriction = params.approximation == APPROXIMATION_RESTRICTION
    N = range(instance.nb_nodes)
    unavail_lb = instance.failure_prob(N)
    unavail_ub = max(1.0 - node.availability for node in instance.nodes)
    unavail_points = touch_points(unavail_lb, unavail_ub, params.nb_breakpoints)
    avail_points = touch_points(1.0 - unavail_ub, 1.0 - unavail_lb, params.nb_breakpoints)

    for k, d in enumerate(instance.demands):
        log_avail = []
        for i in range(d.nb_sections):
            sec_avail = m.addVar(lb=1.0 - unavail_ub, ub=1.0 - unavail_lb, name=f"secAvail({k},{i})")
            sec_unavail = m.addVar(lb=unavail_lb, ub=unavail_ub, name=f"secUnavail({k},{i})")
            m.addConstr(sec_avail + sec_unavail == 1, name=f"AvailUnavail({k},{i})")

            log_fail = gp.quicksum(math.log(1.0 - instance.nodes[v].availability) * x[k, i, v] for v in N)
            _add_log_bound(m, sec_unavail, log_fail, unavail_points, restriction, f"unavail_{k}_{i}")

            w = m.addVar(lb=math.log(1.0 - unavail_ub), ub=0.0, name=f"logAvail({k},{i})")
            _add_log_bound(m, sec_avail, w, avail_points, restriction, f"avail_{k}_{i}")
            log_avail.append(w)

        m.addConstr(gp.quicksum(log_avail) >= math.log(d.availability), name=f"ChainAvailability({k})")


# -------------------------
# Solve
# -------------------------
def solve_gurobi(instance, params=None, msg=False):
    """
    Branch-and-cut for minimum-cost placement under chain availability
    requirements. Availability is enforced exactly by the lazy constraints of
    the callback (or approximated in the model when configured).
    """
    params = params or Parameters()
    m, variables, objective = build_model(instance, params, msg=msg)

    callback = None
    if not params.linear_relaxation:
        callback = AvailabilityCallback(instance, params, variables, objective, verbose=msg)
        m.optimize(callback)
        if callback.error is not None:
            raise callback.error
    else:
        m.optimize()

    stats = callback.stats.as_dict() if callback is not None else {}
    status = m.Status
    if m.SolCount == 0:
        print(f"[MILP] No feasible solution or unsolved. Status={status_to_str(status)}")
        return GurobiSolveResult(status, status_to_str(status), None, {},
                                 runtime=m.Runtime, stats=stats)

    values = {key: var.X for key, var in variables.items()}
    is_mip = not params.linear_relaxation
    return GurobiSolveResult(
        status, status_to_str(status), m.ObjVal, values,
        best_bound=m.ObjBound if is_mip else m.ObjVal,
        gap=m.MIPGap if is_mip else 0.0,
        node_count=m.NodeCount if is_mip else 0.0,
        runtime=m.Runtime,
        stats=stats,
    )
