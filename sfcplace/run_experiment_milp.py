import argparse
import os
import sys
import time
from datetime import datetime

from sfcplace.milp.create_instance import create_instance, load_instance
from sfcplace.milp.helpers import append_result_csv, export_result_row, sanity_check_milp_gurobi
from sfcplace.milp.params import APPROXIMATION_TYPES, Parameters, print_parameters, read_parameters
from sfcplace.milp.solver_gurobi import solve_gurobi
from sfcplace.utils.create_folder import create_simulation_folder
from sfcplace.utils.generate_demands import generate_random_demands
from sfcplace.utils.topology import generate_complete_graph, topologie_finlande

VNF_PROFILES = [
    {"name": "firewall", "consumption": 1.0, "cost": 10.0},
    {"name": "nat", "consumption": 1.0, "cost": 8.0},
    {"name": "ids", "consumption": 2.0, "cost": 15.0},
    {"name": "lb", "consumption": 1.5, "cost": 12.0},
]


def build_parser():
    parser = argparse.ArgumentParser(
        description="Minimum-cost VNF placement under chain availability requirements (Gurobi branch-and-cut).")
    parser.add_argument("--params", help="key=value parameter file (instance files, cut switches, ...)")
    parser.add_argument("--topology", choices=["finland", "complete"], default="finland",
                        help="generated topology when no parameter file is given")
    parser.add_argument("--nodes", type=int, default=8, help="number of nodes of the complete topology")
    parser.add_argument("--demands", type=int, default=4, help="number of generated demands")
    parser.add_argument("--vnfs-per-demand", type=int, default=3, help="chain length of generated demands")
    parser.add_argument("--seed", type=int, default=1, help="seed of the generated instance")
    parser.add_argument("--time-limit", type=float, default=None, help="solver time limit in seconds")
    parser.add_argument("--approximation", choices=APPROXIMATION_TYPES, default=None)
    parser.add_argument("--no-lazy", action="store_true", help="disable lazy availability constraints")
    parser.add_argument("--no-heuristic", action="store_true", help="disable the matheuristic")
    parser.add_argument("--output", default=None, help="CSV file receiving one result row per run")
    parser.add_argument("--results-dir", default="results")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def _make_instance(args, params):
    if args.params:
        if not (params.node_file and params.vnf_file and params.demand_file):
            raise ValueError("Parameter file must define node_file, vnf_file and demand_file")
        return load_instance(params.node_file, params.vnf_file, params.demand_file, params.link_file)

    if args.topology == "finland":
        G = topologie_finlande(seed=args.seed)
    else:
        G = generate_complete_graph(args.nodes, seed=args.seed)
    demands = generate_random_demands(G, VNF_PROFILES, args.demands, args.vnfs_per_demand, seed=args.seed)
    return create_instance(G, VNF_PROFILES, demands)


def main(argv=None):
    args = build_parser().parse_args(argv)

    try:
        params = read_parameters(args.params, msg=args.verbose) if args.params else Parameters()
        if args.time_limit is not None:
            params.time_limit = args.time_limit
        if args.approximation is not None:
            params.approximation = args.approximation
        if args.no_lazy:
            params.lazy = False
        if args.no_heuristic:
            params.heuristic = False
        params.validate()
        if args.verbose and not args.params:
            print_parameters(params)

        instance = _make_instance(args, params)
        print(f"[INFO] {instance}")

        print("[INFO][MILP] Running Gurobi branch-and-cut...")
        t0 = time.time()
        res = solve_gurobi(instance, params, msg=args.verbose)
        print(f"[INFO][MILP] Done in {time.time() - t0:.2f}s, status={res.status_str}")

        sanity_check_milp_gurobi(res, instance)

        output = args.output or params.output_file
        if output is None:
            output = os.path.join(create_simulation_folder(args.results_dir), "milp_results.csv")
        ts_now = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        append_result_csv(output, export_result_row(res, instance, params, ts_now))
    except Exception as e:
        print(f"[ERROR][MILP] Failed: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
