import random


def generate_random_demands(G, vnf_profiles, num_demands, num_vnfs_per_demand, seed=None,
                            availability_choices=(0.99, 0.995, 0.999)):
    """
    Random chains over the VNF types of `vnf_profiles` (list of dicts with
    at least a `name`). Source and target are drawn among the graph nodes.
    """
    rng = random.Random(seed)
    nodes = list(G.nodes)
    names = [p["name"] for p in vnf_profiles]
    demands = []
    for _ in range(num_demands):
        source, target = rng.sample(nodes, 2) if len(nodes) > 1 else (nodes[0], nodes[0])
        demands.append({
            "source": source,
            "target": target,
            "vnfs": [rng.choice(names) for _ in range(num_vnfs_per_demand)],
            "bandwidth": rng.randint(1, 10),
            "availability": rng.choice(availability_choices),
        })
    return demands
