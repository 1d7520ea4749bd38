from .generate_demands import generate_random_demands
from .topology import generate_complete_graph, topologie_finlande
from .create_folder import create_simulation_folder
