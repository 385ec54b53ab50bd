"""Error taxonomy.

Everything except BuildError is a structural or configuration error,
raised before any output exists. BuildError comes from the external
builder and is passed through untouched; builds are deterministic, so
a failure is a defect to fix, not something to retry.
"""


class CixError(Exception):
    """Base class for all cix errors."""


class NotFoundError(CixError, LookupError):
    """Unknown artifact or package set name."""


class CyclicSetError(CixError):
    """A package set transitively includes itself."""

    def __init__(self, cycle: list[str]):
        self.cycle = list(cycle)
        super().__init__("package set cycle: " + " -> ".join(self.cycle))


class SetConflictError(CixError):
    """Two occurrences of one name resolve to different artifacts."""


class RuleConflictError(CixError):
    """Overlay chain integrity violation."""


class PassthruViolationError(RuleConflictError):
    """A rewrite rule dropped or changed an undeclared passthrough attribute."""


class MissingTargetError(CixError):
    """A rewrite rule targets a name absent from the catalog-so-far."""


class InvalidRoleConfigError(CixError, ValueError):
    """Image options conflict with the role's invariants."""


class BuildError(CixError):
    """The external builder failed or returned an unexpected reference."""


class LayerSharingError(CixError):
    """Two images that should share layers do not."""
