"""Download orchestration and shared primitives."""
