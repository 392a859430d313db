"""Installer failure classification."""

import re

from .models import ErrorType, InstallError

# npm 6: "peer dep missing: react@^17.0.0, required by ..."
_PEER_DEP_MISSING = re.compile(r"peer dep missing: ((?:@[^/]+/)?[^@,\s]+)(?:@\S+)?")
# npm 7+: 'peer react@"^16.8.0" from react-dom@16.14.0'
_ERESOLVE_PEER = re.compile(r"peer ((?:@[^/\s]+/)?[^@\s]+)@")

_PEER_CODES = ("EPEERINVALID", "ERESOLVE")
_NETWORK_CODES = ("ENOTFOUND", "ETIMEDOUT", "ECONNRESET", "EAI_AGAIN")
_BUILD_MARKERS = ("build error", "ELIFECYCLE")


class ManifestError(Exception):
    """Raised when a manifest cannot be read, parsed or restored."""


def classify_install_output(output: str | None) -> InstallError:
    """Classify captured installer output.

    Args:
        output: Combined stdout/stderr of the install command

    Returns:
        Exactly one classification; Unknown when no pattern matches
    """
    text = output or ""

    if any(code in text for code in _PEER_CODES):
        match = _PEER_DEP_MISSING.search(text) or _ERESOLVE_PEER.search(text)
        return InstallError(
            error_type=ErrorType.PEER_DEPENDENCY_CONFLICT,
            message="Peer dependency conflict",
            conflicting_package=match.group(1) if match else None,
        )

    if any(code in text for code in _NETWORK_CODES):
        return InstallError(error_type=ErrorType.NETWORK_ERROR, message="Network error")

    if any(marker in text for marker in _BUILD_MARKERS):
        return InstallError(error_type=ErrorType.BUILD_FAILURE, message="Build failure")

    return InstallError(error_type=ErrorType.UNKNOWN, message="Unknown install error")
