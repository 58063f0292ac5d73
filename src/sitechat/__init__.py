"""sitechat: chat backend for websites, answering from their own WordPress content.

``__version__`` is also sent in the content fetcher's User-Agent header.
"""

from __future__ import annotations

import warnings
from importlib.metadata import PackageNotFoundError, version

FALLBACK_VERSION = "0.0.0+unknown"

try:
    __version__ = version("sitechat")
except PackageNotFoundError:
    # Running from a checkout that was never pip-installed
    warnings.warn(
        f"sitechat is not installed; reporting version {FALLBACK_VERSION!r}. "
        "Run 'pip install -e .' to pick up the real version.",
        RuntimeWarning,
        stacklevel=2,
    )
    __version__ = FALLBACK_VERSION
