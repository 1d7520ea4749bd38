import pytest

from sfcplace.heuristics.matheuristic import Matheuristic
from sfcplace.milp.context import ContextId
from sfcplace.milp.params import Parameters

from conftest import FakeContext, make_instance


def _uniform(instance, value):
    x_rel = [[[value] * instance.nb_nodes for _ in range(d.nb_sections)] for d in instance.demands]
    y_rel = [[value] * instance.nb_vnfs for _ in range(instance.nb_nodes)]
    return x_rel, y_rel


def test_tie_break_prefers_more_remaining_capacity():
    costs = [[5.0, 5.0 + 1e-8, 10.0], [5.0, 5.0, 10.0]]
    inst = make_instance([0.9, 0.8, 0.95], 0.99, costs=costs)
    heur = Matheuristic(inst, Parameters())
    heur.remaining = [10.0, 20.0, 50.0]
    assert heur.get_node_to_install(0, 0) == 1


def test_cheaper_node_wins_over_capacity():
    costs = [[5.0, 6.0, 10.0], [5.0, 6.0, 10.0]]
    inst = make_instance([0.9, 0.8, 0.95], 0.99, costs=costs)
    heur = Matheuristic(inst, Parameters())
    heur.remaining = [10.0, 20.0, 50.0]
    assert heur.get_node_to_install(0, 0) == 0


def test_installed_vnf_is_free():
    costs = [[5.0, 6.0, 10.0], [5.0, 6.0, 10.0]]
    inst = make_instance([0.9, 0.8, 0.95], 0.99, costs=costs)
    heur = Matheuristic(inst, Parameters())
    heur.remaining = [10.0, 20.0, 50.0]
    heur.ysol[2][0] = 1
    assert heur.get_node_to_install(0, 0) == 2


def test_no_qualifying_node():
    inst = make_instance([0.9, 0.8, 0.95], 0.99, bandwidth=5.0)
    heur = Matheuristic(inst, Parameters())
    heur.remaining = [1.0, 1.0, 1.0]
    assert heur.get_node_to_install(0, 0) == -1


def test_heuristic_rule():
    inst = make_instance([0.9, 0.8, 0.95], 0.99)
    heur = Matheuristic(inst, Parameters())
    assert heur.heuristic_rule(0.0, 1e100)
    assert not heur.heuristic_rule(5.0, 0.0)

    approx = Matheuristic(inst, Parameters(approximation="relaxation"))
    assert not approx.heuristic_rule(0.0, 1e100)


def test_phase_two_repairs_empty_solution():
    inst = make_instance([0.9, 0.8, 0.95], 0.99)
    heur = Matheuristic(inst, Parameters())
    x_rel, y_rel = _uniform(inst, 0.0)
    assert heur.run_phase_one(x_rel, y_rel) == 0.0
    assert heur.run_phase_two()

    availability, _ = heur.solution_availability(0)
    assert availability >= 0.99
    expected = sum(inst.placement_cost(v, f) for v in range(inst.nb_nodes) for f in range(inst.nb_vnfs)
                   if heur.ysol[v][f])
    assert heur.objective == pytest.approx(expected)


def test_phase_two_fails_without_capacity():
    inst = make_instance([0.9, 0.8, 0.95], 0.99, capacity=0.5)
    heur = Matheuristic(inst, Parameters())
    x_rel, y_rel = _uniform(inst, 0.0)
    heur.run_phase_one(x_rel, y_rel)
    assert not heur.run_phase_two()


def test_reproducible_with_fixed_seed():
    inst = make_instance([0.9, 0.8, 0.95, 0.97], 0.99, nb_sections=3, nb_demands=2)
    x_rel, y_rel = _uniform(inst, 0.4)
    runs = []
    for _ in range(2):
        heur = Matheuristic(inst, Parameters(), seed=7)
        heur.run_phase_one(x_rel, y_rel)
        feasible = heur.run_phase_two()
        runs.append((feasible, [row[:] for row in heur.ysol],
                     [[sec[:] for sec in chain] for chain in heur.xsol], heur.objective))
    assert runs[0] == runs[1]


def test_run_posts_improving_solution():
    inst = make_instance([0.9, 0.8, 0.95], 0.99)
    heur = Matheuristic(inst, Parameters())
    x_rel, y_rel = _uniform(inst, 1.0)
    ctx = FakeContext(ContextId.RELAXATION, relaxation_objective=0.0, incumbent=1e100)

    assert heur.run(ctx, x_rel, y_rel)
    assert len(ctx.posted) == 1
    values, objective = ctx.posted[0]
    total = sum(inst.placement_cost(v, f) for v in range(inst.nb_nodes) for f in range(inst.nb_vnfs))
    assert objective == pytest.approx(total)
    assert values[("x", 0, 1, 2)] == 1.0
    assert values[("y", 0, 0)] == 1.0


def test_run_does_not_post_worse_solution():
    inst = make_instance([0.9, 0.8, 0.95], 0.99)
    heur = Matheuristic(inst, Parameters())
    x_rel, y_rel = _uniform(inst, 1.0)
    # LP value 0 against an incumbent of 1: always fires, never improves
    ctx = FakeContext(ContextId.RELAXATION, relaxation_objective=0.0, incumbent=1.0)
    assert not heur.run(ctx, x_rel, y_rel)
    assert ctx.posted == []


def test_phase_one_respects_capacity_and_placements():
    # every node fits a single section (capacity 1.5, each section needs 1)
    inst = make_instance([0.9, 0.8, 0.95], 0.99, capacity=1.5, nb_demands=3)
    heur = Matheuristic(inst, Parameters())
    x_rel, y_rel = _uniform(inst, 1.0)
    heur.run_phase_one(x_rel, y_rel)

    for v, node in enumerate(inst.nodes):
        load = sum(heur.xsol[k][i][v] * inst.required_capacity(k, f)
                   for k, demand in enumerate(inst.demands) for i, f in enumerate(demand.vnfs))
        assert load <= node.capacity
        assert heur.remaining[v] == pytest.approx(node.capacity - load)

    heur.run_phase_two()
    for k, demand in enumerate(inst.demands):
        for i, f in enumerate(demand.vnfs):
            for v in range(inst.nb_nodes):
                if heur.xsol[k][i][v]:
                    assert heur.ysol[v][f] == 1
