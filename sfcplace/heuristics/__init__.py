from .matheuristic import Matheuristic
