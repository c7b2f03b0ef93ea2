import pathlib
from importlib import metadata

_FALLBACK_VERSION = "1.0.0"


def _get_version():
    """Version from the repository VERSION file, else the installed distribution."""
    version_file = pathlib.Path(__file__).parent.parent / "VERSION"
    try:
        with open(version_file, 'r', encoding='utf-8') as f:
            return f.read().strip()
    except OSError:
        pass
    try:
        return metadata.version("intelbridge")
    except metadata.PackageNotFoundError:
        return _FALLBACK_VERSION


__version__ = _get_version()

VERSION = tuple(int(part) for part in __version__.split('.') if part.isdigit())
