"""Workflows for reviewstream."""

from .review import ReviewWorkflow

__all__ = ["ReviewWorkflow"]
