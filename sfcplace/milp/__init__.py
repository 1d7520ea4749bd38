from .formulation import Node, VNF, Demand, Link, PlacementInstance
from .create_instance import create_instance, load_instance
from .params import Parameters, read_parameters
from .context import CallbackContext, CallbackError, ContextId, GurobiContext
from .cuts import LinearCut, build_cut_pool
from .callback import AvailabilityCallback, CallbackStats
from .solver_gurobi import solve_gurobi, GurobiSolveResult
from .helpers import sanity_check_milp_gurobi, service_availability
