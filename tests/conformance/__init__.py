"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of lot registration and revenue
distribution. Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. conservation.py - Distributions never pay out more than the revenue
2. determinism.py - Same snapshot and revenue give the same transfers
3. gates.py - Positivity, future harvest and owner-only checks
4. atomicity.py - Failed distributions and the two transfer policies

These tests use hypothesis for property-based testing.
"""
