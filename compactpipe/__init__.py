"""
compactpipe - Compact deployment pipeline builder

Describes pull -> build -> deploy pipelines for static sites and
server-rendered applications, and the resources deployed around them.
"""

__version__ = "0.1.0"


__all__ = [
    "CompactPipeline",
    "ConfigurationError",
    "TopologyError",
    "load_topology_config",
]

from .errors import ConfigurationError, TopologyError
from .pipeline import CompactPipeline
from .config import load_topology_config
