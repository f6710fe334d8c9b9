from .model import Event, State, Specification
from .builder import SpecificationBuilder, StateDeclaration, build_specification

__all__ = [
    "Event",
    "State",
    "Specification",
    "SpecificationBuilder",
    "StateDeclaration",
    "build_specification",
]
