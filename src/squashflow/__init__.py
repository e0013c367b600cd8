"""
squashflow - squash a feature branch into a single clean pull request commit
"""

__version__ = "0.1.0"
__license__ = "MIT"

# Import main CLI for convenience
from squashflow.cli import cli

__all__ = ["cli", "__version__"]
