"""Reconcile OPNsense appliance configuration through its REST API."""

__version__ = "0.1.0"
