"""
graceful.platform
=================

The delivery mechanism for the running OS, chosen once at import time.
"""

import importlib
import os
from typing import Final

from graceful.platform.base import PlatformOps

__all__ = ["PlatformOps", "platform"]

_mod = {"posix": ".posix", "nt": ".windows"}.get(os.name, ".posix")
platform: Final[PlatformOps] = importlib.import_module(_mod, __name__).platform_impl
