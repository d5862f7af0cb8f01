"""
cka - Kubernetes platform CLI
Runs Pulumi Automation API stacks in a fixed order to build an EKS platform
"""

__version__ = "0.1.0"
