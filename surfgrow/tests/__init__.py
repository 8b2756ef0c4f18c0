"""
Surface Growth Test Suite

Tests for fields, projection, the octree, repulsion and the growth controller.
"""
