"""Exception taxonomy for verification flows.

Everything except the request-fatal errors at the bottom is local to one
unit of work (a chain, a build profile or an artifact) and is caught by the
caller that owns that unit.
"""


class VerificationError(Exception):
    """Base class for all verifier errors."""


class LengthMismatch(VerificationError):
    """Expected bytecode is shorter than the found leading code."""


class ArtifactReadError(VerificationError):
    """A build artifact is missing, malformed or unsupported."""


class BuildFailure(VerificationError):
    """A build profile failed to produce output."""


class DiscoveryFailure(VerificationError):
    """Creation data could not be recovered on one chain."""


class NoCodeAtAddress(DiscoveryFailure):
    pass


class TransactionNotFound(DiscoveryFailure):
    pass


class UnsupportedFactory(DiscoveryFailure):
    pass


# Request-fatal errors

class InvalidAddressError(VerificationError, ValueError):
    pass


class UnsupportedFrameworkError(VerificationError):
    pass


class NoExpectedDataError(VerificationError):
    """No configured chain returned creation or deployed code."""


class ConfigurationError(VerificationError):
    pass


class RepositoryError(VerificationError):
    """Cloning or checking out the source repository failed."""
