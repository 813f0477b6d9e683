"""
Error classes for compactpipe.

Errors are raised synchronously while a topology is being described:
- ConfigurationError: a required input is missing or structurally invalid
- TopologyError: a topology document cannot be loaded or interpreted

Error handling contract:
- Errors are raised before any stage or action is appended
- Nothing is retried; describing a pipeline is deterministic and does no IO
- Duplicate action names, artifact mismatches and run-order values are
  validated by the deployment platform when the pipeline is provisioned
"""


class CompactPipeError(Exception):
    """Base exception for compactpipe."""
    pass


class ConfigurationError(CompactPipeError):
    """
    Configuration error - the description is invalid.

    Examples:
    - Pipeline constructed without a build project
    - Empty or non-string action name
    - Additional output artifact that is neither an Artifact nor a name
    - Negative cache max-age
    """
    pass


class TopologyError(ConfigurationError):
    """
    Topology error - a topology document cannot be used.

    Examples:
    - File not found or empty
    - Invalid YAML syntax
    - Missing 'source' or 'build' section
    - Unknown deployment kind
    """
    pass
