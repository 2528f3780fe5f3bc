"""Stackwright: dependency-aware provisioning of declared infrastructure stacks."""

__version__ = "0.4.0"
