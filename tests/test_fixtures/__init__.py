"""Test factories shared across test layers."""
