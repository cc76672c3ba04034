"""Bump a Helm chart's version when a new application release is tagged."""

__version__ = "0.1.0"
