"""rig test suite."""
