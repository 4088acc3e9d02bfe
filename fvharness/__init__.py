"""Functional verification harness for Felix against a Kubernetes datastore."""
