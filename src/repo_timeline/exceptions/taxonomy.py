"""Error taxonomy with error codes.

Error Code Convention:
    RT1xx - Extraction errors (repository resolution, git subprocess, parsing)
    RT2xx - Provider errors
    RT3xx - Orchestration errors
    RT4xx - Configuration errors
"""

from enum import Enum


class ErrorCode(Enum):
    """Structured error codes for observability and debugging."""

    # Extraction errors (RT1xx)
    RT100 = "RT100"  # Repository path does not exist
    RT101 = "RT101"  # Path is not a git repository
    RT102 = "RT102"  # git executable not found
    RT103 = "RT103"  # git exited with non-zero status
    RT104 = "RT104"  # git subprocess timeout
    RT105 = "RT105"  # Extraction cancelled
    RT110 = "RT110"  # Log record could not be parsed

    # Provider errors (RT2xx)
    RT200 = "RT200"  # Provider initialization failed
    RT201 = "RT201"  # Provider fetch timed out
    RT202 = "RT202"  # Unknown provider id
    RT203 = "RT203"  # Provider fetch raised

    # Orchestration errors (RT3xx)
    RT300 = "RT300"  # No enabled and healthy provider
    RT301 = "RT301"  # Every provider failed

    # Configuration errors (RT4xx)
    RT400 = "RT400"  # Invalid configuration value or file
