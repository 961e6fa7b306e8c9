"""Cluster state access for secretwatch.

Submodules:
    errors      -- SecretNotFoundError, ClusterReadError.
    reader      -- ClusterReader protocol consumed by the driver.
    convert     -- Raw API dict -> model converters.
    kubernetes  -- kubernetes-asyncio implementation of ClusterReader.
"""

from secretwatch.cluster.errors import ClusterReadError, SecretNotFoundError
from secretwatch.cluster.reader import ClusterReader

__all__ = ["ClusterReadError", "ClusterReader", "SecretNotFoundError"]
