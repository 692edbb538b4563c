"""Version information."""

from llmsweep.version.llmsweep_version import LLMSWEEP_VERSION, Version

__all__ = ["LLMSWEEP_VERSION", "Version"]
