"""Platform layer: subprocess execution."""

from shipit.platform.process import ProcessError, ProcessStream, run, stream

__all__ = ["ProcessError", "ProcessStream", "run", "stream"]
