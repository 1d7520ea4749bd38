from __future__ import annotations

import re
from typing import Any, Dict, List, Optional

import networkx as nx
import pandas as pd

from .formulation import Demand, Link, Node, PlacementInstance, VNF


def create_instance(G, vnfs, demands):
    """
    Build a PlacementInstance from a physical topology and chain requests.

    Expected fields:
      - G.nodes[n]: capacity, availability, (optional) name, cost_factor
      - G.edges[e]: (optional) bandwidth, delay
      - vnfs: list of dicts {name, consumption, cost}; cost is either a scalar
        (scaled by each node's cost_factor) or a mapping node -> cost
      - demands: list of dicts {source, target, vnfs, bandwidth, availability[, latency]};
        the chain lists VNF names or VNF positions
    """
    node_labels = list(G.nodes)
    node_id = {n: idx for idx, n in enumerate(node_labels)}

    # --- Nodes ---
    nodes = []
    for n in node_labels:
        attrs = G.nodes[n]
        if "availability" not in attrs:
            raise ValueError(f"Node {n} has no 'availability' attribute")
        nodes.append(Node(
            id=node_id[n],
            name=str(attrs.get("name", n)),
            capacity=float(attrs.get("capacity", attrs.get("cpu", 0.0))),
            availability=float(attrs["availability"]),
        ))

    # --- Links (routing only, kept for completeness) ---
    links = [
        Link(node_id[u], node_id[v],
             float(G[u][v].get("bandwidth", 0.0)), float(G[u][v].get("delay", G[u][v].get("latency", 0.0))))
        for u, v in G.edges
    ]

    # --- VNF types ---
    vnf_list = []
    for f, vnf in enumerate(vnfs):
        cost = vnf.get("cost", 1.0)
        if isinstance(cost, dict):
            costs = tuple(float(cost[n]) for n in node_labels)
        else:
            costs = tuple(float(cost) * float(G.nodes[n].get("cost_factor", 1.0)) for n in node_labels)
        vnf_list.append(VNF(
            id=f,
            name=str(vnf.get("name", f"vnf{f}")),
            consumption=float(vnf.get("consumption", 1.0)),
            costs=costs,
        ))
    vnf_by_name = {vnf.name: vnf.id for vnf in vnf_list}

    # --- Demands ---
    demand_list = []
    for k, dem in enumerate(demands):
        chain = []
        for item in dem["vnfs"]:
            if isinstance(item, str):
                if item not in vnf_by_name:
                    raise ValueError(f"Demand {k}: unknown VNF '{item}'")
                chain.append(vnf_by_name[item])
            else:
                chain.append(int(item))
        demand_list.append(Demand(
            id=k,
            source=node_id.get(dem.get("source"), -1),
            target=node_id.get(dem.get("target"), -1),
            vnfs=tuple(chain),
            bandwidth=float(dem["bandwidth"]),
            availability=float(dem["availability"]),
            max_latency=float(dem.get("latency", float("inf"))),
        ))

    return PlacementInstance(nodes, vnf_list, demand_list, links)


# -------------------------------------------------------------------------
# File loading
# -------------------------------------------------------------------------
def _read_table(path, required_columns, sep):
    df = pd.read_csv(path, sep=sep, skipinitialspace=True)
    df.columns = [str(c).strip().lower() for c in df.columns]
    missing = [c for c in required_columns if c not in df.columns]
    if missing:
        raise ValueError(f"{path}: missing column(s) {missing}")
    return df


def _optional_float(row, column, default=0.0) -> float:
    value = row.get(column, default)
    return default if pd.isna(value) else float(value)


def _split_chain(raw) -> List[Any]:
    items = [s.strip() for s in re.split(r"[-,|]", str(raw)) if s.strip()]
    return [int(s) if s.isdigit() else s for s in items]


def load_instance(node_file, vnf_file, demand_file, link_file: Optional[str] = None, sep=";"):
    """
    Read an instance from CSV files.

      node_file:   name;capacity;availability[;cost_factor]
      link_file:   source;target[;bandwidth;delay]
      vnf_file:    name;consumption;cost
      demand_file: source;target;bandwidth;availability;vnfs[;latency]
    """
    G = nx.Graph()

    nodes_df = _read_table(node_file, ["name", "capacity", "availability"], sep)
    for row_idx, row in nodes_df.iterrows():
        try:
            G.add_node(
                str(row["name"]).strip(),
                name=str(row["name"]).strip(),
                capacity=float(row["capacity"]),
                availability=float(row["availability"]),
                cost_factor=float(row["cost_factor"]) if "cost_factor" in nodes_df.columns else 1.0,
            )
        except (TypeError, ValueError) as e:
            raise ValueError(f"{node_file}: bad row {row_idx}: {e}") from e

    if link_file is not None:
        links_df = _read_table(link_file, ["source", "target"], sep)
        for row_idx, row in links_df.iterrows():
            u, v = str(row["source"]).strip(), str(row["target"]).strip()
            if u not in G or v not in G:
                raise ValueError(f"{link_file}: row {row_idx} references unknown node")
            try:
                G.add_edge(u, v,
                           bandwidth=_optional_float(row, "bandwidth"),
                           delay=_optional_float(row, "delay"))
            except (TypeError, ValueError) as e:
                raise ValueError(f"{link_file}: bad row {row_idx}: {e}") from e

    vnfs_df = _read_table(vnf_file, ["name", "consumption", "cost"], sep)
    vnfs: List[Dict[str, Any]] = []
    for row_idx, row in vnfs_df.iterrows():
        try:
            vnfs.append({
                "name": str(row["name"]).strip(),
                "consumption": float(row["consumption"]),
                "cost": float(row["cost"]),
            })
        except (TypeError, ValueError) as e:
            raise ValueError(f"{vnf_file}: bad row {row_idx}: {e}") from e

    demands_df = _read_table(demand_file, ["source", "target", "bandwidth", "availability", "vnfs"], sep)
    demands: List[Dict[str, Any]] = []
    for row_idx, row in demands_df.iterrows():
        try:
            dem = {
                "source": str(row["source"]).strip(),
                "target": str(row["target"]).strip(),
                "bandwidth": float(row["bandwidth"]),
                "availability": float(row["availability"]),
                "vnfs": _split_chain(row["vnfs"]),
            }
            if "latency" in demands_df.columns and not pd.isna(row["latency"]):
                dem["latency"] = float(row["latency"])
        except (TypeError, ValueError) as e:
            raise ValueError(f"{demand_file}: bad row {row_idx}: {e}") from e
        demands.append(dem)

    return create_instance(G, vnfs, demands)
