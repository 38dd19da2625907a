"""
Domain models — Pydantic types for devbox.

All models are re-exported here for convenient access:

    from devbox.core.models import Action, Receipt, PackageSpec, SetupConfig
"""

from devbox.core.models.action import Action, Receipt
from devbox.core.models.setup import PackageSpec, ProfileBlock, SetupConfig

__all__ = [
    # action.py
    "Action",
    # setup.py
    "PackageSpec",
    "ProfileBlock",
    "Receipt",
    "SetupConfig",
]
