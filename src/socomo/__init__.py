"""
Socomo - Source Code Modularity

Reveals the actual module structure of a compiled codebase: which classes
depend on which, grouped at every package depth from a single box down to
one box per class, with a guess at the most readable level.
"""

__version__ = "0.3.0"

from .api import AnalysisResult, analyze, run_analysis
from .composition import Component, ComponentDep, Level, Module
from .scanning import Diagnostic

__all__ = [
    "analyze",  # Main entry point
    "run_analysis",  # Already-enumerated artifacts
    "AnalysisResult",
    "Module",
    "Level",
    "Component",
    "ComponentDep",
    "Diagnostic",
]
