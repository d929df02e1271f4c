"""
Terradiff - report drift between Terraform configuration and live infrastructure.

This package runs `terraform init`, `refresh` and `plan` against a configured
workspace, reports whether a diff exists and records command metrics.
"""

__version__ = "0.1.0"
