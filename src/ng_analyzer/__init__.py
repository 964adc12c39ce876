"""ng-analyzer: Static Analysis for Angular Projects

Turns parsed TypeScript records into a project model, then evaluates
profile-driven rules against it to produce issues and recommendations.
"""

from ng_analyzer.analysis import AnalysisOrchestrator, run_analysis
from ng_analyzer.config import Config, load_config, load_project_config
from ng_analyzer.dependency_graph import DependencyGraph, DependencyGraphBuilder
from ng_analyzer.errors import ConfigError, NgAnalyzerError
from ng_analyzer.findings import Issue, Recommendation, Severity
from ng_analyzer.metrics import calculate_metrics
from ng_analyzer.models import Project
from ng_analyzer.project_builder import ProjectBuilder, build_project
from ng_analyzer.results import AnalysisResult
from ng_analyzer.rules import BUILTIN_PROFILES, AnalyzerCategory, Profile, RuleEngine

__version__ = "0.1.0"

__all__ = [
    # Pipeline
    "ProjectBuilder",
    "build_project",
    "calculate_metrics",
    "DependencyGraph",
    "DependencyGraphBuilder",
    "RuleEngine",
    "AnalysisOrchestrator",
    "AnalyzerCategory",
    "run_analysis",
    # Model and results
    "Project",
    "Issue",
    "Recommendation",
    "Severity",
    "AnalysisResult",
    # Configuration
    "Config",
    "Profile",
    "BUILTIN_PROFILES",
    "load_config",
    "load_project_config",
    # Errors
    "NgAnalyzerError",
    "ConfigError",
]
