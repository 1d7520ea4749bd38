from __future__ import annotations

import threading
from typing import Dict, List, Optional, Tuple

from ..heuristics import matheuristic
from .context import (CallbackError, ContextId, GurobiContext,
                      assignment_matrix, placement_matrix)
from .cuts import LinearCut, build_cut_pool
from .lazy import add_lazy_constraints
from .separation import separate_fractional


class CallbackStats:
    """Counters shared by every callback invocation."""

    def __init__(self):
        self._lock = threading.Lock()
        self._user_cuts = 0
        self._lazy_constraints = 0
        self._heuristic_cuts = 0
        self._heuristic_solutions = 0
        self._time = 0.0

    def add_user_cuts(self, n=1):
        with self._lock:
            self._user_cuts += n

    def add_lazy_constraints(self, n=1):
        with self._lock:
            self._lazy_constraints += n

    def add_heuristic_cuts(self, n=1):
        with self._lock:
            self._heuristic_cuts += n

    def add_heuristic_solutions(self, n=1):
        with self._lock:
            self._heuristic_solutions += n

    def add_time(self, seconds):
        with self._lock:
            self._time += seconds

    @property
    def user_cuts(self) -> int:
        return self._user_cuts

    @property
    def lazy_constraints(self) -> int:
        return self._lazy_constraints

    @property
    def heuristic_cuts(self) -> int:
        return self._heuristic_cuts

    @property
    def heuristic_solutions(self) -> int:
        return self._heuristic_solutions

    @property
    def time(self) -> float:
        return self._time

    def as_dict(self):
        with self._lock:
            return {
                "user_cuts": self._user_cuts,
                "lazy_constraints": self._lazy_constraints,
                "heuristic_cuts": self._heuristic_cuts,
                "heuristic_solutions": self._heuristic_solutions,
                "callback_time": self._time,
            }


class AvailabilityCallback:
    """
    Branch-and-cut callback for availability-aware placement.

      - RELAXATION: cut pool, cover separators and greedy availability cuts;
        when none of them cuts the point, the matheuristic may post a solution.
      - CANDIDATE:  every chain below its required availability rejects the
        candidate with a lifted no-good inequality.

    `variables` maps ("x",k,i,v) / ("y",v,f) keys to gurobipy variables and
    `objective` maps keys to objective coefficients; both are only needed when
    the object is used as a gurobipy callback (see `__call__`).
    """

    def __init__(self, instance, params, variables: Optional[Dict[Tuple, object]] = None,
                 objective: Optional[Dict[Tuple, float]] = None, verbose=False):
        self.instance = instance
        self.params = params
        self.variables = variables or {}
        self.objective = objective or {}
        self.verbose = verbose

        self.pool: List[LinearCut] = build_cut_pool(instance, params, msg=verbose)
        self.stats = CallbackStats()
        self.matheuristic = matheuristic.Matheuristic(instance, params, msg=verbose) if params.heuristic else None

        self.xsol = assignment_matrix(instance)
        self.ysol = placement_matrix(instance)

        self.added_cuts: List[LinearCut] = []
        self.rejections: List[LinearCut] = []
        self.error: Optional[BaseException] = None

    # -------------------------
    # Solution readers
    # -------------------------
    def get_fractional_solution(self, context):
        if context.context_id != ContextId.RELAXATION:
            raise CallbackError("Fractional values requested outside a relaxation context")
        for k, demand in enumerate(self.instance.demands):
            for i in range(demand.nb_sections):
                for v in range(self.instance.nb_nodes):
                    self.xsol[k][i][v] = context.relaxation_value(("x", k, i, v))
        for v in range(self.instance.nb_nodes):
            for f in range(self.instance.nb_vnfs):
                self.ysol[v][f] = context.relaxation_value(("y", v, f))

    def get_integer_solution(self, context):
        if context.context_id != ContextId.CANDIDATE:
            raise CallbackError("Candidate values requested outside a candidate context")
        for k, demand in enumerate(self.instance.demands):
            for i in range(demand.nb_sections):
                for v in range(self.instance.nb_nodes):
                    self.xsol[k][i][v] = context.candidate_value(("x", k, i, v))
        for v in range(self.instance.nb_nodes):
            for f in range(self.instance.nb_vnfs):
                self.ysol[v][f] = context.candidate_value(("y", v, f))

    # -------------------------
    # Separation
    # -------------------------
    def add_user_cuts(self, context) -> bool:
        def add_cut(cut):
            context.add_user_cut(cut)
            self.added_cuts.append(cut)
            self.stats.add_user_cuts()

        def add_heuristic_cut(cut):
            add_cut(cut)
            self.stats.add_heuristic_cuts()

        return separate_fractional(self.instance, self.params, self.pool, self.xsol,
                                   add_cut, add_heuristic_cut, msg=self.verbose)

    def add_lazy_constraints(self, context) -> int:
        def reject(cut):
            context.reject_candidate(cut)
            self.rejections.append(cut)
            self.stats.add_lazy_constraints()

        return add_lazy_constraints(self.instance, self.xsol, reject, msg=self.verbose)

    # -------------------------
    # Entry points
    # -------------------------
    def invoke(self, context):
        start = context.elapsed()
        try:
            if context.context_id == ContextId.RELAXATION:
                self.get_fractional_solution(context)
                if not self.add_user_cuts(context) and self.matheuristic is not None:
                    if self.matheuristic.run(context, self.xsol, self.ysol):
                        self.stats.add_heuristic_solutions()
            elif context.context_id == ContextId.CANDIDATE:
                if not context.is_candidate_point():
                    raise CallbackError("Unbounded candidate point")
                self.get_integer_solution(context)
                self.add_lazy_constraints(context)
            else:
                raise CallbackError(f"Unexpected callback context: {context.context_id}")
        finally:
            self.stats.add_time(context.elapsed() - start)

    def __call__(self, model, where):
        """gurobipy entry point: model.optimize(callback)."""
        if self.error is not None:
            return
        context = GurobiContext(model, where, self.variables, self.objective)
        if context.context_id is None:
            return
        if context.context_id == ContextId.CANDIDATE and not self.params.lazy:
            return
        try:
            self.invoke(context)
        except Exception as e:  # re-raised by the solver once optimize() returns
            self.error = e
            model.terminate()
