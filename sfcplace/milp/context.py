from __future__ import annotations

import enum
from typing import Any, Dict, Iterable, Optional, Sequence, Tuple

import gurobipy as gp
from gurobipy import GRB


class CallbackError(RuntimeError):
    """Broken contract between the callback and the search engine. Always fatal."""


class ContextId(enum.Enum):
    RELAXATION = "relaxation"
    CANDIDATE = "candidate"


class CallbackContext:
    """
    What the branch-and-cut engine exposes to the callback at one invocation.

    Variables are addressed by tuple keys: ("x", k, i, v) for assignments and
    ("y", v, f) for placements.
    """

    context_id: Optional[ContextId] = None

    def elapsed(self) -> float:
        raise NotImplementedError

    # --- relaxation context ---
    def relaxation_value(self, key: Tuple) -> float:
        raise NotImplementedError

    def relaxation_objective(self) -> float:
        raise NotImplementedError

    def incumbent_objective(self) -> float:
        raise NotImplementedError

    def add_user_cut(self, cut) -> None:
        raise NotImplementedError

    # --- candidate context ---
    def is_candidate_point(self) -> bool:
        raise NotImplementedError

    def candidate_value(self, key: Tuple) -> float:
        raise NotImplementedError

    def reject_candidate(self, cut) -> None:
        raise NotImplementedError

    # --- both ---
    def post_heuristic_solution(self, values: Dict[Tuple, float], objective: float) -> None:
        raise NotImplementedError


class GurobiContext(CallbackContext):
    """
    Adapter over one gurobipy callback invocation.

      - where == MIPNODE with an optimal node LP  -> RELAXATION
      - where == MIPSOL                            -> CANDIDATE
      - anything else                              -> context_id is None
    """

    def __init__(self, model: gp.Model, where: int, variables: Dict[Tuple, Any],
                 objective: Dict[Tuple, float]):
        self.model = model
        self.where = where
        self.variables = variables
        self.objective = objective
        self._values: Optional[Dict[Tuple, float]] = None

        if where == GRB.Callback.MIPSOL:
            self.context_id = ContextId.CANDIDATE
        elif where == GRB.Callback.MIPNODE and model.cbGet(GRB.Callback.MIPNODE_STATUS) == GRB.OPTIMAL:
            self.context_id = ContextId.RELAXATION
        else:
            self.context_id = None

    def elapsed(self) -> float:
        return self.model.cbGet(GRB.Callback.RUNTIME)

    def _load_values(self):
        if self._values is None:
            keys = list(self.variables)
            gvars = [self.variables[key] for key in keys]
            if self.context_id == ContextId.RELAXATION:
                vals = self.model.cbGetNodeRel(gvars)
            else:
                vals = self.model.cbGetSolution(gvars)
            self._values = dict(zip(keys, vals))
        return self._values

    # --- relaxation context ---
    def relaxation_value(self, key):
        return self._load_values()[key]

    def relaxation_objective(self):
        values = self._load_values()
        return sum(coeff * values[key] for key, coeff in self.objective.items())

    def incumbent_objective(self):
        return self.model.cbGet(GRB.Callback.MIPNODE_OBJBST)

    def add_user_cut(self, cut):
        self.model.cbCut(cut.to_gurobi(self.variables))

    # --- candidate context ---
    def is_candidate_point(self):
        # MIPSOL solutions are always bounded points
        return self.context_id == ContextId.CANDIDATE

    def candidate_value(self, key):
        return self._load_values()[key]

    def reject_candidate(self, cut):
        self.model.cbLazy(cut.to_gurobi(self.variables))

    # --- both ---
    def post_heuristic_solution(self, values, objective):
        keys = [key for key in values if key in self.variables]
        self.model.cbSetSolution([self.variables[key] for key in keys], [values[key] for key in keys])
        self.model.cbUseSolution()


def variable_keys(instance) -> Iterable[Tuple]:
    """All ("y", v, f) and ("x", k, i, v) keys of an instance, in model order."""
    for v in range(instance.nb_nodes):
        for f in range(instance.nb_vnfs):
            yield ("y", v, f)
    for k, demand in enumerate(instance.demands):
        for i in range(demand.nb_sections):
            for v in range(instance.nb_nodes):
                yield ("x", k, i, v)


def assignment_matrix(instance, fill: float = 0.0) -> Sequence:
    """xSol[k][i][v] scratch matrix."""
    return [[[fill] * instance.nb_nodes for _ in range(d.nb_sections)] for d in instance.demands]


def placement_matrix(instance, fill: float = 0.0) -> Sequence:
    """ySol[v][f] scratch matrix."""
    return [[fill] * instance.nb_vnfs for _ in range(instance.nb_nodes)]
