"""Version command."""

from .. import __version__
from . import app
from ._common import console


@app.command()
def version() -> None:
    """Print the socomo version."""
    console.print(f"socomo {__version__}", highlight=False)
