"""Cloud provider access layer.

This package holds the per-region client registry, tag-driven resource
lookup, and the tagging and inventory collaborators used by workflows.
"""
