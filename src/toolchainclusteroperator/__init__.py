"""Kubernetes operator tracking the health of ToolchainClusters."""

from importlib.metadata import PackageNotFoundError, version

__all__ = ("__version__",)

try:
    __version__ = version("toolchain-cluster-operator")
except PackageNotFoundError:
    # Not installed, e.g. running from a source checkout
    __version__ = "unknown"
