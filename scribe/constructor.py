from enum import Enum

# -------------------------------------------------------------- #
# Environment Selection
# -------------------------------------------------------------- #


class ServerManagerType(Enum):
    """Which set of external servers to wire up."""

    DEVELOPMENT = "development"
    PRODUCTION = "production"
    TESTING = "testing"


def resolve_environment(name: str) -> ServerManagerType:
    """Map a configured environment name to its ServerManagerType.

    Raises:
        ValueError: If the name is not a known environment
    """
    try:
        return ServerManagerType(name.strip().lower())
    except ValueError:
        choices = ", ".join(t.value for t in ServerManagerType)
        raise ValueError(f"Unknown SCRIBE_ENV {name!r}, expected one of: {choices}") from None
