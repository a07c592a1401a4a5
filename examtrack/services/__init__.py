"""Service layer exposing the requirement tracker."""

from .tracker import ExamTracker

__all__ = ["ExamTracker"]
