"""Test execution against deployed fixtures."""

from .pipeline import E2EPipeline
from .suite import PytestSuiteRunner, SuiteRunner

__all__ = ["E2EPipeline", "PytestSuiteRunner", "SuiteRunner"]
