"""
Core algorithm tests for EKFANN.

Tests for:
- Matrix primitives
- Neurons and transfer functions
- Network propagation and Jacobians
- EKF training steps
"""
