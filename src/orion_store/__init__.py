"""Top-level package for orion-store.

Catalog reconciliation, release resolution and download lifecycle engine
for the Orion app store client.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("orion-store")
except PackageNotFoundError:
    # Fallback for development environments where package isn't installed
    __version__ = "dev"
