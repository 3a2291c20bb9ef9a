"""
Script contains the startup dependency check
"""

import importlib.util

from dexfetch.configs.constants import Constants
from dexfetch.errors import DependencyMissingError


def check_dependencies(modules=Constants.REQUIRED_MODULES):
    """Raise DependencyMissingError naming every module that cannot be imported."""
    missing = [name for name in modules if importlib.util.find_spec(name) is None]
    if missing:
        raise DependencyMissingError(missing)
