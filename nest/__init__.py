__title__ = 'nest'
__author__ = 'Eiko Reishin (影皇嶺臣)'
__license__ = 'MIT'
# Placeholder, modified by dynamic-versioning.
__version__ = "0.0.0"

from .ast import *
from .binding import *
from .codegen import *
from .faults import *
from .merger import *
from .parser import *
from .resolver import *
from .runtime import *
from .templates import *

VersionInfo = __import__("collections").namedtuple("VersionInfo", (
    "major",
    "minor",
    "micro",
    "releaselevel",
    "serial",
    "metadata"
))

# Placeholder, modified by dynamic-versioning.
version_info = VersionInfo(0, 0, 0, "final", 0, "")

__all__ = (
    "__title__",
    "__author__",
    "__license__",
    "__version__",
    "version_info"
)

# Load the exposed API of the syntax tree
__all__ += ast.__all__  # type: ignore[attr-defined]
# Load the exposed API of the command-line binding
__all__ += binding.__all__  # type: ignore[attr-defined]
# Load the exposed API of the code generator
__all__ += codegen.__all__  # type: ignore[attr-defined]
# Load the exposed API of the faults
__all__ += faults.__all__  # type: ignore[attr-defined]
# Load the exposed API of the merger
__all__ += merger.__all__  # type: ignore[attr-defined]
# Load the exposed API of the parser
__all__ += parser.__all__  # type: ignore[attr-defined]
# Load the exposed API of the directive resolver
__all__ += resolver.__all__  # type: ignore[attr-defined]
# Load the exposed API of the runtime
__all__ += runtime.__all__  # type: ignore[attr-defined]
# Load the exposed API of the templates
__all__ += templates.__all__  # type: ignore[attr-defined]
