"""Workflow definitions, artifact grouping and task assignment."""
