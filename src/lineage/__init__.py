"""Lineage workflows.

This package provisions volumes that continue a lineage, snapshots a
lineage's volumes, and prunes snapshot history per region.
"""
