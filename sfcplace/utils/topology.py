import random

import networkx as nx


def _node_attrs(rng, capacity, availability_range=(0.9, 0.999)):
    lo, hi = availability_range
    return {
        "capacity": capacity,
        "availability": round(rng.uniform(lo, hi), 4),
        "cost_factor": 1.0,
    }


def generate_complete_graph(num_nodes, seed=42, capacity_range=(50, 150), availability_range=(0.9, 0.999)):
    rng = random.Random(seed)
    G = nx.complete_graph(num_nodes)
    for n in G.nodes:
        G.nodes[n].update(_node_attrs(rng, rng.randint(*capacity_range), availability_range))
        G.nodes[n]["name"] = f"n{n}"
    for u, v in G.edges():
        G[u][v]["delay"] = rng.randint(1, 10)
        G[u][v]["bandwidth"] = rng.randint(50, 150)
    return G


def topologie_finlande(seed=42):
    """
    12-node Finnish backbone. Core nodes (1, 6, 11) are larger, more
    available and more expensive to host a VNF on.
    """
    rng = random.Random(seed)
    G = nx.Graph()

    core_nodes = {1, 6, 11}
    for node in range(1, 13):
        if node in core_nodes:
            G.add_node(node, name=f"FI{node}", **_node_attrs(rng, 640, (0.99, 0.999)))
            G.nodes[node]["cost_factor"] = 2.0
        else:
            G.add_node(node, name=f"FI{node}", **_node_attrs(rng, 160, (0.9, 0.98)))

    edges = [
        (1, 2, 37),
        (1, 3, 183),
        (2, 4, 87),
        (2, 6, 110),
        (3, 4, 62),
        (3, 11, 69),
        (3, 12, 73),
        (4, 5, 84),
        (5, 6, 83),
        (5, 8, 44),
        (6, 7, 133),
        (7, 8, 50),
        (7, 9, 18),
        (7, 10, 16),
        (8, 9, 28),
        (8, 11, 20),
        (9, 10, 74),
        (10, 11, 54),
        (10, 12, 34)
    ]

    for u, v, distance_km in edges:
        delay_ms = max(1, round(distance_km * 0.005, 3))
        if distance_km < 50:
            bandwidth = 1000
        elif distance_km < 150:
            bandwidth = 500
        else:
            bandwidth = 250
        G.add_edge(u, v, delay=delay_ms, bandwidth=bandwidth)

    return G
