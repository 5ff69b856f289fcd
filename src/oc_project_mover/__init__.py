"""Migrate an OpenShift project and its resources from one cluster to another."""

__version__ = "0.1.0"
