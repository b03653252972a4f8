"""
Install failure analysis (pure).

Parses the output of a failed package-manager command for known error
patterns and suggests remediation. No I/O, no subprocess.
"""

from __future__ import annotations

import re

# Generic hints attached to every package install failure.
GENERIC_INSTALL_SUGGESTIONS: tuple[str, ...] = (
    "Check your internet connection",
    "Verify the package name and version",
    "Try clearing package manager cache",
)

GENERIC_UNEXPECTED_SUGGESTIONS: tuple[str, ...] = (
    "Check the logs for more details",
    "Try running with --verbose flag",
)

PREFLIGHT_SUGGESTIONS: tuple[str, ...] = ("Fix the issue and try again",)

_NETWORK_CODES = ("enotfound", "etimedout", "econnreset", "econnrefused", "eai_again")


def analyse_install_failure(output: str, timed_out: bool = False) -> dict | None:
    """Analyse a failed install's output for common patterns.

    Returns a remediation dict, or ``None`` if the error is unrecognized.

    Args:
        output: stderr (or combined output) of the failed command.
        timed_out: Whether the command was killed on timeout.

    Returns:
        ``{"cause": "...", "suggestion": "...", "confidence": "high|medium|low"}``
    """
    if timed_out:
        return {
            "cause": "Install command timed out",
            "suggestion": "Increase the timeout with --timeout, or check for a stalled prompt",
            "confidence": "high",
        }

    if not output:
        return None

    s = output.lower()

    # Package or version does not exist
    if "e404" in s or "404 not found" in s or "is not in this registry" in s:
        m = re.search(r"'([^']+)' is not in (?:this|the npm) registry", output)
        pkg = m.group(1) if m else "the package"
        return {
            "cause": f"Package not found in registry: {pkg}",
            "suggestion": "Check the package name for typos, or the registry URL for private packages",
            "confidence": "high",
        }

    if "etarget" in s or "no matching version" in s:
        return {
            "cause": "Requested version does not exist",
            "suggestion": "List published versions (e.g. npm view <name> versions) and pin an existing one",
            "confidence": "high",
        }

    # Peer dependency conflict
    if "eresolve" in s or "unable to resolve dependency tree" in s:
        return {
            "cause": "Dependency conflict",
            "suggestion": "Retry with --force, or align the conflicting peer dependency versions",
            "confidence": "medium",
        }

    if "eintegrity" in s or "integrity checksum failed" in s:
        return {
            "cause": "Corrupted download (integrity check failed)",
            "suggestion": "Clear the package manager cache (polyinstall packages cache-clean) and retry",
            "confidence": "high",
        }

    for code in _NETWORK_CODES:
        if code in s:
            return {
                "cause": f"Network error ({code.upper()})",
                "suggestion": "Check connectivity, proxy settings (HTTPS_PROXY) or the --registry URL",
                "confidence": "medium",
            }

    if "eacces" in s or "eperm" in s or "permission denied" in s:
        return {
            "cause": "Permission denied",
            "suggestion": "Install locally instead of globally, or fix ownership of the global prefix",
            "confidence": "medium",
        }

    if "enospc" in s or "no space left on device" in s:
        return {
            "cause": "Disk full",
            "suggestion": "Free disk space or clear the package manager cache",
            "confidence": "high",
        }

    return None


def install_failure_suggestions(output: str, timed_out: bool = False) -> list[str]:
    """Specific suggestion (if any) followed by the generic ones."""
    analysis = analyse_install_failure(output, timed_out=timed_out)
    suggestions = [analysis["suggestion"]] if analysis else []
    suggestions.extend(GENERIC_INSTALL_SUGGESTIONS)
    return suggestions
