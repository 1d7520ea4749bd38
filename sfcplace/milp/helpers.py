import os
from datetime import datetime

import pandas as pd

from .cuts import EPS


def _assigned_nodes(values, instance, k, i):
    return [v for v in range(instance.nb_nodes) if values.get(("x", k, i, v), 0.0) > 1 - EPS]


def service_availability(values, instance, k):
    """Chain availability of demand k in a solved assignment."""
    demand = instance.demands[k]
    return instance.chain_availability(
        instance.parallel_availability(_assigned_nodes(values, instance, k, i))
        for i in range(demand.nb_sections)
    )


def count_availability_violations(values, instance, eps=1e-6):
    return sum(1 for k, d in enumerate(instance.demands)
               if service_availability(values, instance, k) < d.availability - eps)


def max_availability_violation(values, instance):
    """Largest shortfall (required - achieved) over all demands, 0 when all are met."""
    worst = 0.0
    for k, d in enumerate(instance.demands):
        worst = max(worst, d.availability - service_availability(values, instance, k))
    return worst


def sanity_check_milp_gurobi(res, instance, eps=1e-6):
    """
    Sanity check for MILP (Gurobi) results.
    Prints node usage, per-demand placement and availability, and callback counters.
    """
    print("=== Sanity check MILP (Gurobi) ===")
    if res.objective is not None:
        print(f"Objective value: {res.objective:.3f}")
    else:
        print("Objective value: None (no feasible solution)")
    print(f"Status: {res.status_str}")

    values = res.values or {}

    # --- Capacity usage per node ---
    used = [0.0] * instance.nb_nodes
    for k, d in enumerate(instance.demands):
        for i, f in enumerate(d.vnfs):
            for v in _assigned_nodes(values, instance, k, i):
                used[v] += instance.required_capacity(k, f)

    print("\nNode usage:")
    for v, node in enumerate(instance.nodes):
        installed = [instance.vnfs[f].name for f in range(instance.nb_vnfs) if values.get(("y", v, f), 0.0) > 0.5]
        warn = " (!)" if used[v] > node.capacity + eps else ""
        print(f"  Node {node.name}: used {used[v]:.2f} / cap {node.capacity:.2f}{warn}  VNFs {installed}")

    # --- Demands ---
    met = 0
    for k, d in enumerate(instance.demands):
        print(f"\n[Demand {k}]")
        for i, f in enumerate(d.vnfs):
            nodes = [instance.nodes[v].name for v in _assigned_nodes(values, instance, k, i)]
            print(f"  Section {i} ({instance.vnfs[f].name}) -> Node(s) {nodes}")
        avail = service_availability(values, instance, k)
        ok = avail >= d.availability - eps
        met += ok
        print(f"  Availability {avail:.6f} / required {d.availability:.6f} {'OK' if ok else 'VIOLATED'}")

    print(f"\nDemands meeting availability: {met}/{instance.nb_demands}")
    if res.stats:
        print(f"User cuts: {res.stats.get('user_cuts', 0)}  "
              f"Lazy constraints: {res.stats.get('lazy_constraints', 0)}  "
              f"Heuristic cuts: {res.stats.get('heuristic_cuts', 0)}  "
              f"Heuristic solutions: {res.stats.get('heuristic_solutions', 0)}  "
              f"Callback time: {res.stats.get('callback_time', 0.0):.2f}s")


def export_result_row(res, instance, params, timestamp_str=None):
    timestamp_str = timestamp_str or datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    values = res.values or {}
    has_solution = res.objective is not None
    return {
        "timestamp": timestamp_str,
        "node_file": params.node_file,
        "demand_file": params.demand_file,
        "num_nodes": instance.nb_nodes,
        "num_vnfs": instance.nb_vnfs,
        "num_demands": instance.nb_demands,
        "approximation": params.approximation,
        "linear_relaxation": params.linear_relaxation,
        "lazy": params.lazy,
        "heuristic": params.heuristic,
        "status": res.status_str,
        "objective": res.objective,
        "best_bound": res.best_bound,
        "gap": res.gap,
        "nodes": res.node_count,
        "runtime_sec": res.runtime,
        "avail_violations": count_availability_violations(values, instance) if has_solution else None,
        "max_avail_violation": max_availability_violation(values, instance) if has_solution else None,
        "user_cuts": res.stats.get("user_cuts", 0),
        "lazy_constraints": res.stats.get("lazy_constraints", 0),
        "heuristic_cuts": res.stats.get("heuristic_cuts", 0),
        "heuristic_solutions": res.stats.get("heuristic_solutions", 0),
        "callback_time": res.stats.get("callback_time", 0.0),
    }


def append_result_csv(path, row):
    """Append one result row, writing the header only when the file is new."""
    df = pd.DataFrame([row])
    exists = os.path.isfile(path)
    df.to_csv(path, mode="a", header=not exists, index=False)
    print(f"[INFO] Result row appended to: {path}")
    return path
