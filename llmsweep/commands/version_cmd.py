"""
Version command - displays llmsweep version information
"""

from llmsweep.version import LLMSWEEP_VERSION


def run_version(verbose: bool = False) -> None:
    """
    Display llmsweep version information.

    Args:
        verbose: If True, show additional details like full hash and date
    """
    if verbose:
        print(f"llmsweep version {LLMSWEEP_VERSION.full_version()}")
        print("\nDetailed version information:")
        print(f"  Semantic Version: {LLMSWEEP_VERSION}")
        print(f"  Build Date:       {LLMSWEEP_VERSION.date_string()}")
        print(f"  Package Hash:     {LLMSWEEP_VERSION.hash}")
    else:
        print(f"llmsweep {LLMSWEEP_VERSION}")
