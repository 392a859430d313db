"""Tests for installer output classification."""

from core.errors import classify_install_output
from core.models import ErrorType


class TestClassifyInstallOutput:
    """Test error taxonomy derived from installer output."""

    def test_peer_dependency_conflict_extracts_package(self):
        output = (
            "npm ERR! code EPEERINVALID\n"
            "npm ERR! peer dep missing: react@^17.0.0, required by react-dom@17.0.0\n"
        )
        error = classify_install_output(output)
        assert error.error_type == ErrorType.PEER_DEPENDENCY_CONFLICT
        assert error.conflicting_package == "react"

    def test_peer_dependency_conflict_scoped_package(self):
        output = (
            "npm ERR! code EPEERINVALID\n"
            "npm ERR! peer dep missing: @angular/core@^12.0.0, required by @angular/common@12.0.0\n"
        )
        error = classify_install_output(output)
        assert error.conflicting_package == "@angular/core"

    def test_eresolve_conflict(self):
        output = (
            "npm ERR! code ERESOLVE\n"
            "npm ERR! ERESOLVE unable to resolve dependency tree\n"
            "npm ERR! Could not resolve dependency:\n"
            'npm ERR! peer react@"^16.8.0" from react-dom@16.14.0\n'
        )
        error = classify_install_output(output)
        assert error.error_type == ErrorType.PEER_DEPENDENCY_CONFLICT
        assert error.conflicting_package == "react"

    def test_peer_conflict_without_package(self):
        error = classify_install_output("npm ERR! code EPEERINVALID\n")
        assert error.error_type == ErrorType.PEER_DEPENDENCY_CONFLICT
        assert error.conflicting_package is None

    def test_network_error(self):
        output = (
            "npm ERR! code ENOTFOUND\n"
            "npm ERR! network request to https://registry.npmjs.org/x failed\n"
        )
        assert classify_install_output(output).error_type == ErrorType.NETWORK_ERROR
        assert classify_install_output("ETIMEDOUT").error_type == ErrorType.NETWORK_ERROR

    def test_build_failure(self):
        output = "npm ERR! code ELIFECYCLE\nnpm ERR! build error\nnpm ERR! Exit status 1\n"
        assert classify_install_output(output).error_type == ErrorType.BUILD_FAILURE

    def test_unknown_default(self):
        error = classify_install_output("npm ERR! A really strange error happened\n")
        assert error.error_type == ErrorType.UNKNOWN
        assert error.conflicting_package is None

    def test_empty_and_missing_output(self):
        assert classify_install_output("").error_type == ErrorType.UNKNOWN
        assert classify_install_output(None).error_type == ErrorType.UNKNOWN
