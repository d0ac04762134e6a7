__title__ = 'scriptor'
__author__ = 'Seralix Source'
__license__ = 'MIT'
__version__ = "0.1.0"

from .dispatcher import *
from .environment import *
from .faults import *
from .scripts import *

VersionInfo = __import__("collections").namedtuple("VersionInfo", (
    "major",
    "minor",
    "micro",
    "releaselevel",
    "serial",
    "metadata"
))

version_info = VersionInfo(0, 1, 0, "final", 0, "")

__all__ = (
    "__title__",
    "__author__",
    "__license__",
    "__version__",
    "version_info"
)

# Load the exposed API of the dispatcher
__all__ += dispatcher.__all__  # type: ignore[attr-defined]
# Load the exposed API of the environment composer
__all__ += environment.__all__  # type: ignore[attr-defined]
# Load the exposed API of the faults
__all__ += faults.__all__  # type: ignore[attr-defined]
# Load the exposed API of the script discovery
__all__ += scripts.__all__  # type: ignore[attr-defined]
