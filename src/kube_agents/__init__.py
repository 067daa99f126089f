"""Test tooling for clusters of autonomous control agents."""
