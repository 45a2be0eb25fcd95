"""
filewatch - watches individually named files for changes.

Survives atomic symlink swaps such as the ones Kubernetes performs when it
refreshes mounted ConfigMap and Secret volumes.
"""

__version__ = "1.0.0"
