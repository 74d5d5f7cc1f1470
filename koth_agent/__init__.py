"""King of the Hill agent.

Answers ownership and health polls from a scoring server.
"""
from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("koth-agent")
except PackageNotFoundError:  # pragma: no cover
    __version__ = "1.1.0"
