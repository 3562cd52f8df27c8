"""
Tests package for backward responsibility analysis.

This package contains unit and integration tests for:
- Transition systems and counterexamples
- Safety-game construction and attractor solving
- Coalition value functions
- Shapley/Banzhaf responsibility (both semantics)
- Component aggregation
- Data generation and model loading
- Experiment runner and CLI
"""
