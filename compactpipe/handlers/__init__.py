"""
compactpipe.handlers - Code of the companion functions a pipeline provisions.

- invalidation.handler: purge a CDN distribution, then report the job result
- update_code.handler: push a build artifact into a function's code

Both are invoked by the deployment platform with a pipeline job event.
"""

from .job import PipelineJob, parse_job

__all__ = ["PipelineJob", "parse_job"]
