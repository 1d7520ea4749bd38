from __future__ import annotations

import os
from dataclasses import dataclass, fields
from typing import Optional

APPROXIMATION_NONE = "none"
APPROXIMATION_RESTRICTION = "restriction"
APPROXIMATION_RELAXATION = "relaxation"
APPROXIMATION_TYPES = (APPROXIMATION_NONE, APPROXIMATION_RESTRICTION, APPROXIMATION_RELAXATION)

# numeric codes accepted in parameter files
_APPROXIMATION_CODES = {"-1": APPROXIMATION_RESTRICTION, "0": APPROXIMATION_NONE, "1": APPROXIMATION_RELAXATION}


@dataclass
class Parameters:
    # --- instance files ---
    node_file: Optional[str] = None
    link_file: Optional[str] = None
    vnf_file: Optional[str] = None
    demand_file: Optional[str] = None
    output_file: Optional[str] = None

    # --- formulation ---
    disaggregated_placement: bool = True
    strong_node_capacity: bool = False
    approximation: str = APPROXIMATION_NONE
    nb_breakpoints: int = 10
    linear_relaxation: bool = False

    # --- cut pool ---
    node_cover: bool = True
    vnf_lower_bound: bool = True
    section_failure: bool = True

    # --- separation ---
    chain_cover: bool = True
    generalized_cover: bool = True
    availability_usercuts: bool = True
    chain_cover_first_hit: bool = False
    generalized_cover_first_hit: bool = True

    # --- callback / search ---
    lazy: bool = True
    heuristic: bool = True
    seed: int = 20102019
    time_limit: Optional[float] = None
    threads: int = 1

    def __post_init__(self):
        self.validate()

    def validate(self):
        if self.approximation not in APPROXIMATION_TYPES:
            raise ValueError(f"Unknown availability approximation '{self.approximation}' "
                             f"(expected one of {APPROXIMATION_TYPES})")
        if self.approximation != APPROXIMATION_NONE and self.nb_breakpoints < 2:
            raise ValueError(f"nb_breakpoints must be >= 2 when approximating, got {self.nb_breakpoints}")
        if self.threads < 1:
            raise ValueError(f"threads must be >= 1, got {self.threads}")
        if self.time_limit is not None and self.time_limit <= 0:
            raise ValueError(f"time_limit must be positive, got {self.time_limit}")

    @property
    def uses_approximation(self) -> bool:
        return self.approximation != APPROXIMATION_NONE


def _parse_bool(key, raw):
    value = raw.strip().lower()
    if value in ("1", "true", "yes", "on"):
        return True
    if value in ("0", "false", "no", "off"):
        return False
    raise ValueError(f"Parameter '{key}': expected a boolean, got '{raw}'")


def _parse_value(key, raw, current):
    if key == "approximation":
        raw = raw.strip().lower()
        return _APPROXIMATION_CODES.get(raw, raw)
    if isinstance(current, bool):
        return _parse_bool(key, raw)
    if key in ("time_limit",):
        return float(raw) if raw.strip() else None
    if isinstance(current, int):
        try:
            return int(raw)
        except ValueError as e:
            raise ValueError(f"Parameter '{key}': expected an integer, got '{raw}'") from e
    return raw.strip() or None


def read_parameters(path, msg=True) -> Parameters:
    """
    Read a `key=value` parameter file into a Parameters object.
    Blank lines and lines starting with '#' are ignored. Relative instance
    file paths are resolved against the parameter file's folder.
    """
    if not os.path.isfile(path):
        raise FileNotFoundError(f"Unable to open parameters file '{path}'")

    defaults = Parameters()
    known = {f.name for f in fields(Parameters)}
    values = {}
    with open(path, encoding="utf-8") as fh:
        for line_no, line in enumerate(fh, start=1):
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            if "=" not in line:
                raise ValueError(f"{path}:{line_no}: expected 'key=value', got '{line}'")
            key, raw = (s.strip() for s in line.split("=", 1))
            if key not in known:
                if msg:
                    print(f"[WARN][PARAMS] Unknown parameter '{key}' ignored ({path}:{line_no}).")
                continue
            values[key] = _parse_value(key, raw, getattr(defaults, key))

    base_dir = os.path.dirname(os.path.abspath(path))
    for key in ("node_file", "link_file", "vnf_file", "demand_file", "output_file"):
        if values.get(key) and not os.path.isabs(values[key]):
            values[key] = os.path.join(base_dir, values[key])

    params = Parameters(**values)
    if msg:
        print_parameters(params)
    return params


def print_parameters(params: Parameters):
    print("[INFO][PARAMS] Node file:          ", params.node_file)
    print("[INFO][PARAMS] Link file:          ", params.link_file)
    print("[INFO][PARAMS] VNF file:           ", params.vnf_file)
    print("[INFO][PARAMS] Demand file:        ", params.demand_file)
    print("[INFO][PARAMS] Output file:        ", params.output_file)
    print("[INFO][PARAMS] Linear relaxation:  ", params.linear_relaxation)
    print("[INFO][PARAMS] Time limit:         ", params.time_limit)
    print("[INFO][PARAMS] Lazy constraints:   ", params.lazy)
    print("[INFO][PARAMS] Heuristic:          ", params.heuristic)
    print("[INFO][PARAMS] Approximation:      ", params.approximation)
    print("[INFO][PARAMS] Node cover:         ", params.node_cover)
    print("[INFO][PARAMS] Chain cover:        ", params.chain_cover)
