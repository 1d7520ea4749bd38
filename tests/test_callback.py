import threading

import pytest

from sfcplace.milp.callback import AvailabilityCallback, CallbackStats
from sfcplace.milp.context import CallbackError, ContextId
from sfcplace.milp.params import Parameters

from conftest import FakeContext, make_instance

NO_CUTS = dict(node_cover=False, vnf_lower_bound=False, section_failure=False,
               chain_cover=False, generalized_cover=False, availability_usercuts=False)


def _x(placement):
    return {("x",) + key: value for key, value in placement.items()}


def test_relaxation_adds_pool_cuts_and_counts(scenario_instance):
    cb = AvailabilityCallback(scenario_instance, Parameters())
    ctx = FakeContext(ContextId.RELAXATION, times=(1.0, 3.5))
    cb.invoke(ctx)

    assert ctx.user_cuts
    assert cb.added_cuts == ctx.user_cuts
    assert cb.stats.user_cuts == len(ctx.user_cuts)
    assert cb.stats.heuristic_cuts == 0
    assert cb.stats.lazy_constraints == 0
    assert cb.stats.time == pytest.approx(2.5)
    # a cut was found: no heuristic run
    assert ctx.posted == []


def test_heuristic_cuts_count_twice(scenario_instance):
    params = Parameters(**dict(NO_CUTS, availability_usercuts=True), heuristic=False)
    cb = AvailabilityCallback(scenario_instance, params)
    ctx = FakeContext(ContextId.RELAXATION, values=_x({(0, 0, 1): 1.0, (0, 1, 1): 1.0}))
    cb.invoke(ctx)
    assert cb.stats.heuristic_cuts == 1
    assert cb.stats.user_cuts == 1


def test_matheuristic_runs_when_no_cut_found(scenario_instance):
    cb = AvailabilityCallback(scenario_instance, Parameters(**NO_CUTS))
    values = {("x", 0, i, v): 1.0 for i in range(2) for v in range(3)}
    values.update({("y", v, f): 1.0 for v in range(3) for f in range(2)})
    ctx = FakeContext(ContextId.RELAXATION, values=values, relaxation_objective=0.0, incumbent=1e100)
    cb.invoke(ctx)
    assert ctx.user_cuts == []
    assert len(ctx.posted) == 1
    assert cb.stats.heuristic_solutions == 1


def test_candidate_rejected(scenario_instance):
    cb = AvailabilityCallback(scenario_instance, Parameters())
    ctx = FakeContext(ContextId.CANDIDATE, values=_x({(0, 0, 1): 1.0, (0, 1, 1): 1.0}))
    cb.invoke(ctx)
    assert len(ctx.rejections) == 1
    assert cb.rejections == ctx.rejections
    assert cb.stats.lazy_constraints == 1
    assert cb.stats.user_cuts == 0


def test_candidate_accepted(scenario_instance):
    cb = AvailabilityCallback(scenario_instance, Parameters())
    ctx = FakeContext(ContextId.CANDIDATE,
                      values=_x({(0, 0, 0): 1.0, (0, 0, 2): 1.0, (0, 1, 0): 1.0, (0, 1, 2): 1.0}))
    cb.invoke(ctx)
    assert ctx.rejections == []
    assert cb.stats.lazy_constraints == 0


def test_unbounded_candidate_is_fatal(scenario_instance):
    cb = AvailabilityCallback(scenario_instance, Parameters())
    with pytest.raises(CallbackError):
        cb.invoke(FakeContext(ContextId.CANDIDATE, bounded=False))


def test_unknown_context_is_fatal(scenario_instance):
    cb = AvailabilityCallback(scenario_instance, Parameters())
    with pytest.raises(CallbackError):
        cb.invoke(FakeContext(None))


def test_values_read_in_wrong_context_are_fatal(scenario_instance):
    cb = AvailabilityCallback(scenario_instance, Parameters())
    with pytest.raises(CallbackError):
        cb.get_integer_solution(FakeContext(ContextId.RELAXATION))
    with pytest.raises(CallbackError):
        cb.get_fractional_solution(FakeContext(ContextId.CANDIDATE))


def test_pool_built_once(scenario_instance):
    cb = AvailabilityCallback(scenario_instance, Parameters())
    pool = list(cb.pool)
    cb.invoke(FakeContext(ContextId.RELAXATION))
    cb.invoke(FakeContext(ContextId.CANDIDATE))
    assert cb.pool == pool


def test_stats_are_thread_safe():
    stats = CallbackStats()

    def work():
        for _ in range(1000):
            stats.add_user_cuts()
            stats.add_lazy_constraints(2)
            stats.add_time(0.5)

    threads = [threading.Thread(target=work) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert stats.user_cuts == 4000
    assert stats.lazy_constraints == 8000
    assert stats.time == pytest.approx(2000.0)
    assert stats.as_dict()["user_cuts"] == 4000


def test_construction_fails_on_unreachable_requirement():
    inst = make_instance([0.9, 0.8], 1.0)
    with pytest.raises(ValueError):
        AvailabilityCallback(inst, Parameters())
