from sfcplace.milp.create_instance import create_instance
from sfcplace.run_experiment_milp import VNF_PROFILES, main
from sfcplace.utils.create_folder import create_simulation_folder
from sfcplace.utils.generate_demands import generate_random_demands
from sfcplace.utils.topology import generate_complete_graph, topologie_finlande


def test_complete_graph_attributes():
    G = generate_complete_graph(5, seed=3)
    assert G.number_of_nodes() == 5
    assert G.number_of_edges() == 10
    for n in G.nodes:
        assert 0.9 <= G.nodes[n]["availability"] <= 0.999
        assert G.nodes[n]["capacity"] > 0


def test_finland_instance():
    G = topologie_finlande()
    demands = generate_random_demands(G, VNF_PROFILES, 4, 3, seed=1)
    inst = create_instance(G, VNF_PROFILES, demands)
    assert inst.nb_nodes == 12
    assert inst.nb_demands == 4
    # core nodes are twice as expensive
    core = [n.id for n in inst.nodes if n.name == "FI1"][0]
    edge = [n.id for n in inst.nodes if n.name == "FI2"][0]
    assert inst.placement_cost(core, 0) == 2 * inst.placement_cost(edge, 0)


def test_demands_are_reproducible():
    G = generate_complete_graph(6, seed=1)
    assert generate_random_demands(G, VNF_PROFILES, 5, 2, seed=9) == generate_random_demands(G, VNF_PROFILES, 5, 2, seed=9)


def test_simulation_folder(tmp_path):
    folder = create_simulation_folder(str(tmp_path))
    assert folder.startswith(str(tmp_path))


def test_cli_reports_errors(tmp_path, capsys):
    rc = main(["--params", str(tmp_path / "missing.txt")])
    assert rc == 1
    assert "[ERROR]" in capsys.readouterr().out
