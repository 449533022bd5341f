__path__ = __import__("pkgutil").extend_path(__path__, __name__)  # NOQA: F-821
__title__ = 'cordage'
__license__ = 'MIT'
# Placeholder, modified by dynamic-versioning.
__version__ = "0.0.0"

from .arguments import *
from .collaborators import *
from .completion import *
from .data import *
from .faults import *
from .flags import *
from .inputs import *
from .nodes import *
from .runner import *
from .system import *
from .transformers import *
from .utils import *
from .validators import *
from .values import *
from .walkers import *

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
    "__path__",
    "__title__",
    "__license__",
    "__version__",
    "version_info"
)

# Load the exposed API of the argument specs
__all__ += arguments.__all__  # type: ignore[attr-defined]
# Load the exposed API of the collaborators
__all__ += collaborators.__all__  # type: ignore[attr-defined]
# Load the exposed API of the completions
__all__ += completion.__all__  # type: ignore[attr-defined]
# Load the exposed API of the data stores
__all__ += data.__all__  # type: ignore[attr-defined]
# Load the exposed API of the faults
__all__ += faults.__all__  # type: ignore[attr-defined]
# Load the exposed API of the flags
__all__ += flags.__all__  # type: ignore[attr-defined]
# Load the exposed API of the input cursor
__all__ += inputs.__all__  # type: ignore[attr-defined]
# Load the exposed API of the nodes
__all__ += nodes.__all__  # type: ignore[attr-defined]
# Load the exposed API of the runner
__all__ += runner.__all__  # type: ignore[attr-defined]
# Load the exposed API of the OS collaborator
__all__ += system.__all__  # type: ignore[attr-defined]
# Load the exposed API of the transformers
__all__ += transformers.__all__  # type: ignore[attr-defined]
# Load the exposed API of the utilities
__all__ += utils.__all__  # type: ignore[attr-defined]
# Load the exposed API of the validators
__all__ += validators.__all__  # type: ignore[attr-defined]
# Load the exposed API of the value converters
__all__ += values.__all__  # type: ignore[attr-defined]
# Load the exposed API of the walkers
__all__ += walkers.__all__  # type: ignore[attr-defined]
