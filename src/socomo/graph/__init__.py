"""Unit-level dependency graph and its construction."""

from .builder import ClassGraphBuilder, build_class_graph, reduce_builders
from .models import ClassGraph, UnitEdge

__all__ = ["ClassGraph", "ClassGraphBuilder", "UnitEdge", "build_class_graph", "reduce_builders"]
