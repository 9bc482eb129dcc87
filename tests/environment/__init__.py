"""
Tests for the environment module.

This package contains tests for:
- config.py: DistillConfig, SnapshotMode
- geometry.py / frames.py: offsets and frame traversal
- visibility.py / id_allocator.py: pure selection helpers
- distiller.py: end-to-end passes over fake pages
- resolver.py / actions.py / snapshot.py: resolution and the action layer
"""
